"""
邮件通知服务（通过 AWS SES 发送报告摘要及附件）
"""
import os
import time
import logging
from datetime import datetime, timezone
from email.mime.application import MIMEApplication
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import List, Optional

import boto3
from botocore.exceptions import ClientError

from ..interfaces import NotificationServiceInterface
from ..models import ReportSummary


class EmailNotificationService(NotificationServiceInterface):
    """邮件通知服务实现"""

    def __init__(self, sender: Optional[str] = None, recipients: Optional[List[str]] = None,
                 region_name: Optional[str] = None, max_retries: int = 3, base_delay: float = 1.0):
        """
        初始化邮件通知服务

        Args:
            sender: 发件人地址，如果为None则从环境变量读取
            recipients: 收件人列表，如果为None则从环境变量读取（逗号分隔）
            region_name: AWS区域名称
            max_retries: 最大重试次数
            base_delay: 重试基础延迟（秒）
        """
        self.sender = sender if sender is not None else os.getenv('EMAIL_SENDER', '')
        if recipients is None:
            recipients = [r.strip() for r in os.getenv('EMAIL_RECIPIENTS', '').split(',')]
        self.recipients = [r for r in recipients if r]
        self.region_name = region_name or os.getenv('AWS_REGION', 'us-east-1')
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.logger = logging.getLogger(__name__)

        # 初始化SES客户端
        self.ses_client = None
        try:
            self.ses_client = boto3.client('ses', region_name=self.region_name)
            self.logger.debug(f"SES客户端初始化成功，区域: {self.region_name}")
        except Exception as e:
            self.logger.error(f"初始化SES客户端失败: {str(e)}")

    def is_configured(self) -> bool:
        """发件人和收件人是否都已配置"""
        return bool(self.sender and self.recipients)

    def send_report(self, summary: ReportSummary, attachments: List[str]) -> bool:
        """
        发送报告摘要邮件

        Args:
            summary: 统计摘要
            attachments: 附件文件路径（CSV/HTML报告）

        Returns:
            bool: 发送是否成功（失败不抛出异常）
        """
        if not self._validate_configuration():
            return False

        try:
            message = self._build_message(summary, attachments)
        except OSError as e:
            self.logger.error(f"读取邮件附件失败: {str(e)}")
            return False

        return self._send_with_retry(message.as_string())

    def _build_message(self, summary: ReportSummary, attachments: List[str]) -> MIMEMultipart:
        message = MIMEMultipart('mixed')
        message['Subject'] = self._format_subject(summary)
        message['From'] = self.sender
        message['To'] = ", ".join(self.recipients)
        message.attach(MIMEText(self.format_notification_content(summary), 'plain', 'utf-8'))

        for path in attachments:
            with open(path, 'rb') as f:
                part = MIMEApplication(f.read(), Name=os.path.basename(path))
            part['Content-Disposition'] = f'attachment; filename="{os.path.basename(path)}"'
            message.attach(part)

        return message

    def _send_with_retry(self, raw_message: str) -> bool:
        """
        带重试机制的SES邮件发送

        Args:
            raw_message: 完整的MIME邮件

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(self.max_retries + 1):
            try:
                response = self.ses_client.send_raw_email(
                    Source=self.sender,
                    Destinations=self.recipients,
                    RawMessage={'Data': raw_message}
                )
                self.logger.info(f"邮件发送成功，MessageId: {response.get('MessageId')}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < self.max_retries:
                    wait_time = self.base_delay * (2 ** attempt)
                    self.logger.warning(
                        f"邮件发送失败 (尝试 {attempt + 1}/{self.max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time:.1f}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"邮件发送失败 - {error_code}: {error_message}")
                return False

            except Exception as e:
                self.logger.error(f"发送邮件时发生未知错误: {type(e).__name__}: {str(e)}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalFailure',
            'RequestTimeout'
        }
        return error_code in retryable_errors

    def format_notification_content(self, summary: ReportSummary) -> str:
        """
        格式化邮件正文

        Args:
            summary: 统计摘要

        Returns:
            str: 邮件正文
        """
        lines = [
            "Certificate expiration report",
            "=" * 30,
            f"Generated: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            "",
            f"Total certificates: {summary.total}",
            f"Valid: {summary.valid}",
            f"Expiring soon (30 days): {summary.expiring_soon}",
            f"Critical (2 days): {summary.critical}",
            f"Expired: {summary.expired}",
            "",
            "The full CSV and HTML reports are attached.",
        ]
        return "\n".join(lines)

    def _format_subject(self, summary: ReportSummary) -> str:
        if summary.critical:
            return f"Certificate report: {summary.critical} critical, {summary.expiring_soon} expiring soon"
        if summary.expiring_soon:
            return f"Certificate report: {summary.expiring_soon} expiring soon"
        return f"Certificate report: {summary.total} certificates checked"

    def _validate_configuration(self) -> bool:
        if not self.ses_client:
            self.logger.error("SES客户端未初始化")
            return False

        if not self.sender:
            self.logger.error("发件人地址未配置")
            return False

        if not self.recipients:
            self.logger.error("收件人地址未配置")
            return False

        return True

    def get_configuration_status(self) -> dict:
        """
        获取配置状态

        Returns:
            dict: 配置状态信息
        """
        return {
            'ses_client_initialized': self.ses_client is not None,
            'sender_configured': bool(self.sender),
            'recipient_count': len(self.recipients),
            'region_name': self.region_name,
            'configuration_valid': self._validate_configuration()
        }
