"""
服务接口定义
"""
from abc import ABC, abstractmethod
from typing import List, Union
from .models import CertificateRecord, ExtractionFailure, ReportSummary, ScanResult


class CertificateExtractorInterface(ABC):
    """证书解析器接口"""

    @abstractmethod
    def extract(self, file_path: str) -> Union[CertificateRecord, ExtractionFailure]:
        """解析单个证书文件"""
        pass


class ReportRendererInterface(ABC):
    """报告渲染器接口"""

    @abstractmethod
    def write(self, records: List[CertificateRecord], path: str, summary: ReportSummary = None) -> str:
        """渲染报告并写入文件"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send_report(self, summary: ReportSummary, attachments: List[str]) -> bool:
        """发送报告摘要邮件"""
        pass

    @abstractmethod
    def format_notification_content(self, summary: ReportSummary) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_scan_start(self, file_count: int):
        """记录扫描开始"""
        pass

    @abstractmethod
    def log_certificate_record(self, record: CertificateRecord):
        """记录证书信息"""
        pass

    @abstractmethod
    def log_extraction_failure(self, failure: ExtractionFailure):
        """记录解析失败信息"""
        pass

    @abstractmethod
    def log_scan_end(self, scan_result: ScanResult):
        """记录扫描结束"""
        pass
