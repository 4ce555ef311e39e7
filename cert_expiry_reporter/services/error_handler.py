"""
错误处理服务
"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..models import ExtractionFailure


class CertificateReportError(Exception):
    """证书报告基础异常"""


class InputDirectoryNotFoundError(CertificateReportError):
    """证书目录不存在（致命错误，终止运行）"""

    def __init__(self, directory: str):
        self.directory = directory
        super().__init__(f"证书目录不存在: {directory}")


class CertificateDecodeError(CertificateReportError):
    """文件既不是PEM也不是DER格式的X.509证书"""


class ReportWriteError(CertificateReportError):
    """报告文件写入失败"""

    def __init__(self, path: str, cause: Exception):
        self.path = path
        self.cause = cause
        super().__init__(f"无法写入报告文件 {path}: {type(cause).__name__}: {cause}")


class ExtractionErrorHandler:
    """证书解析错误处理器"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def handle_extraction_error(self, path: str, error: Exception) -> ExtractionFailure:
        """
        将单个文件的解析异常转换为失败记录

        Args:
            path: 证书文件路径
            error: 异常对象

        Returns:
            ExtractionFailure: 失败信息
        """
        return ExtractionFailure(
            path=str(path),
            error_type=type(error).__name__,
            error_message=str(error),
            suggested_action=self._get_suggested_action(error),
            timestamp=datetime.now(timezone.utc),
        )

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        if isinstance(error, CertificateDecodeError):
            return "文件不是有效的PEM/DER证书，检查导出工具的输出"
        elif isinstance(error, PermissionError):
            return "检查证书文件的读取权限"
        elif isinstance(error, FileNotFoundError):
            return "文件在扫描期间被删除或移动"
        elif isinstance(error, OSError):
            return "检查磁盘和文件系统状态"
        elif isinstance(error, ValueError):
            return "证书内容格式异常，重新导出该证书"
        else:
            return "检查证书文件内容"

    def get_error_statistics(self, failures: List[ExtractionFailure]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            failures: 失败信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not failures:
            return {
                'total_errors': 0,
                'error_types': {},
                'most_common_error': None,
                'most_common_error_count': 0
            }

        error_types = {}
        for failure in failures:
            error_types[failure.error_type] = error_types.get(failure.error_type, 0) + 1

        most_common_error = max(error_types.items(), key=lambda x: x[1])

        return {
            'total_errors': len(failures),
            'error_types': error_types,
            'most_common_error': most_common_error[0],
            'most_common_error_count': most_common_error[1]
        }
