"""
日志服务
"""
import os
import logging
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CertificateRecord, CertificateStatus, ExtractionFailure, ScanResult


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "cert_expiry_reporter", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        # 执行统计
        self.reset_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_scan_start(self, file_count: int):
        """
        记录扫描开始

        Args:
            file_count: 找到的证书文件数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_files'] = file_count

        self.logger.info(f"开始证书扫描，共找到 {file_count} 个证书文件")
        self.logger.info(f"扫描开始时间: {self.execution_stats['start_time'].isoformat()}")

    def log_certificate_record(self, record: CertificateRecord):
        """
        记录证书信息

        Args:
            record: 证书记录
        """
        self.execution_stats['successful_checks'] += 1

        message = (
            f"证书 {record.status.value} - 域名: {record.domain}, "
            f"文件: {record.file_name}, "
            f"过期时间: {record.not_after.isoformat()}, "
            f"剩余天数: {record.days_left} 天, "
            f"颁发者: {record.issuer_name}"
        )
        if record.status in (CertificateStatus.EXPIRED, CertificateStatus.CRITICAL):
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_extraction_failure(self, failure: ExtractionFailure):
        """
        记录证书解析失败（每个失败文件一条ERROR日志）

        Args:
            failure: 失败信息
        """
        self.execution_stats['failed_checks'] += 1
        self.execution_stats['errors'].append({
            'path': failure.path,
            'error_type': failure.error_type,
            'error_message': failure.error_message,
            'timestamp': (failure.timestamp or datetime.now(timezone.utc)).isoformat()
        })

        self.logger.error(
            f"证书解析失败 - 文件: {failure.path}, "
            f"错误: {failure.error_type}: {failure.error_message}"
        )
        if failure.suggested_action:
            self.logger.debug(f"建议操作: {failure.suggested_action}")

    def log_scan_end(self, scan_result: ScanResult):
        """记录扫描结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if self.execution_stats['start_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()
        else:
            duration = 0

        self.logger.info("证书扫描完成")
        self.logger.info(f"总执行时间: {duration:.2f} 秒")
        self.logger.info(
            f"扫描统计: 总计 {scan_result.total_files} 个文件, "
            f"生成记录 {scan_result.successful_count} 条, "
            f"解析失败 {scan_result.failed_count} 个"
        )

    def log_artifact_written(self, artifact_type: str, path: str):
        """记录报告文件已写入"""
        self.execution_stats['artifacts'][artifact_type] = path
        self.logger.info(f"{artifact_type} 报告已生成: {path}")

    def log_artifact_failed(self, artifact_type: str, path: str, error: Exception):
        """记录报告文件写入失败"""
        self.execution_stats['errors'].append({
            'path': path,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        })
        self.logger.error(f"{artifact_type} 报告生成失败: {path} - {type(error).__name__}: {str(error)}")

    def log_notification_sent(self, notification_type: str, recipient_count: int, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型（如 "Email"）
            recipient_count: 接收者数量
            success: 是否发送成功
        """
        if success:
            self.logger.info(
                f"{notification_type} 通知发送成功，接收者数量: {recipient_count}"
            )
        else:
            self.logger.error(
                f"{notification_type} 通知发送失败，接收者数量: {recipient_count}"
            )

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in {'password', 'secret', 'token', 'key'} or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token')
            )

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_files': stats['total_files'],
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'success_rate': (
                stats['successful_checks'] / stats['total_files']
                if stats['total_files'] > 0 else 0
            ),
            'artifacts': dict(stats['artifacts']),
            'error_count': len(stats['errors']),
            'errors': list(stats['errors'])
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)

        if summary['start_time']:
            self.logger.info(f"开始时间: {summary['start_time']}")
        if summary['end_time']:
            self.logger.info(f"结束时间: {summary['end_time']}")

        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"证书文件数: {summary['total_files']}")
        self.logger.info(f"生成记录: {summary['successful_checks']}")
        self.logger.info(f"解析失败: {summary['failed_checks']}")
        self.logger.info(f"成功率: {summary['success_rate']:.1%}")

        for artifact_type, path in summary['artifacts'].items():
            self.logger.info(f"{artifact_type} 报告: {path}")

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['path']} - {error['error_type']}: {error['error_message']}")

            if len(summary['errors']) > 5:
                self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'total_files': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'artifacts': {},
            'errors': []
        }
