"""
配置验证服务
"""
import os
import re
import logging
from typing import Any, Dict

from ..config import ReporterConfig

_EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[a-zA-Z]{2,}$')
_LOG_LEVELS = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

    def validate_all_configurations(self, config: ReporterConfig) -> Dict[str, Any]:
        """
        验证所有配置

        Args:
            config: 运行配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        for name, validate in (
            ('directories', self.validate_directories),
            ('scan', self.validate_scan_settings),
            ('email', self.validate_email_configuration),
        ):
            section = validate(config)
            validation_result['configurations'][name] = section
            if not section['is_valid']:
                validation_result['is_valid'] = False
            validation_result['errors'].extend(section['errors'])
            validation_result['warnings'].extend(section['warnings'])

        return validation_result

    def validate_directories(self, config: ReporterConfig) -> Dict[str, Any]:
        """
        验证证书目录和输出目录

        Args:
            config: 运行配置

        Returns:
            Dict[str, Any]: 目录验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'cert_directory_exists': os.path.isdir(config.cert_directory),
            'output_directory_exists': os.path.isdir(config.output_directory)
        }

        if not result['cert_directory_exists']:
            result['is_valid'] = False
            result['errors'].append(f"证书目录不存在: {config.cert_directory}")

        if not result['output_directory_exists']:
            result['warnings'].append(f"输出目录不存在，将自动创建: {config.output_directory}")

        return result

    def validate_scan_settings(self, config: ReporterConfig) -> Dict[str, Any]:
        """
        验证扫描参数

        Args:
            config: 运行配置

        Returns:
            Dict[str, Any]: 扫描参数验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': []
        }

        if config.concurrency < 1:
            result['is_valid'] = False
            result['errors'].append(f"并发数必须为正整数: {config.concurrency}")
        elif config.concurrency > 64:
            result['warnings'].append(f"并发数过大: {config.concurrency}")

        if not config.file_extension.startswith('.') or len(config.file_extension) < 2:
            result['is_valid'] = False
            result['errors'].append(f"证书文件扩展名格式无效: {config.file_extension}")

        if config.log_level.upper() not in _LOG_LEVELS:
            result['warnings'].append(f"未知的日志级别: {config.log_level}，将使用INFO")

        return result

    def validate_email_configuration(self, config: ReporterConfig) -> Dict[str, Any]:
        """
        验证邮件通知配置（未配置时仅给出警告）

        Args:
            config: 运行配置

        Returns:
            Dict[str, Any]: 邮件配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'enabled': config.email_enabled,
            'invalid_addresses': []
        }

        if not config.email_enabled:
            result['warnings'].append("EMAIL_SENDER 或 EMAIL_RECIPIENTS 未设置，邮件通知已禁用")
            return result

        for address in (config.email_sender,) + tuple(config.email_recipients):
            if not _EMAIL_PATTERN.match(address):
                result['invalid_addresses'].append(address)
                result['warnings'].append(f"邮件地址格式无效: {address}")

        return result

    def get_configuration_summary(self, config: ReporterConfig) -> str:
        """
        获取配置摘要

        Args:
            config: 运行配置

        Returns:
            str: 配置摘要文本
        """
        validation_result = self.validate_all_configurations(config)

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        lines.append("\n配置详情:")
        lines.append(f"  证书目录: {config.cert_directory}")
        lines.append(f"  输出目录: {config.output_directory}")
        lines.append(f"  并发数: {config.concurrency} ({'并发' if config.parallel else '顺序'})")

        return "\n".join(lines)
