"""
运行配置
"""
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Optional, Tuple

from .services.certificate_scanner import DEFAULT_CONCURRENCY, DEFAULT_FILE_EXTENSION

_FALSE_VALUES = {'0', 'false', 'no', 'off'}


def _parse_bool(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in _FALSE_VALUES


def _parse_int(value: Optional[str], default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value.strip())


@dataclass(frozen=True)
class ReporterConfig:
    """启动时构建一次、之后只读的运行配置"""
    cert_directory: str = "./certificates"
    output_directory: str = "./reports"
    file_extension: str = DEFAULT_FILE_EXTENSION
    concurrency: int = DEFAULT_CONCURRENCY
    parallel: bool = True
    report_basename: str = "certificate_report"
    log_level: str = "INFO"
    email_sender: str = ""
    email_recipients: Tuple[str, ...] = field(default_factory=tuple)
    aws_region: str = "us-east-1"

    @classmethod
    def from_env(cls, environ: Optional[Dict[str, str]] = None) -> "ReporterConfig":
        """
        从环境变量构建配置

        Args:
            environ: 环境变量字典，默认为 os.environ

        Returns:
            ReporterConfig: 配置对象

        Raises:
            ValueError: SCAN_CONCURRENCY 不是整数
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        recipients = tuple(
            r.strip() for r in env.get('EMAIL_RECIPIENTS', '').split(',') if r.strip()
        )
        return cls(
            cert_directory=env.get('CERT_DIRECTORY') or defaults.cert_directory,
            output_directory=env.get('REPORT_OUTPUT_DIR') or defaults.output_directory,
            file_extension=env.get('CERT_FILE_EXTENSION') or defaults.file_extension,
            concurrency=_parse_int(env.get('SCAN_CONCURRENCY'), defaults.concurrency),
            parallel=_parse_bool(env.get('SCAN_PARALLEL'), defaults.parallel),
            report_basename=env.get('REPORT_BASENAME') or defaults.report_basename,
            log_level=(env.get('LOG_LEVEL') or defaults.log_level).upper(),
            email_sender=env.get('EMAIL_SENDER', ''),
            email_recipients=recipients,
            aws_region=env.get('AWS_REGION') or defaults.aws_region,
        )

    def with_overrides(self, **overrides: Any) -> "ReporterConfig":
        """返回覆盖了指定字段（忽略None值）的新配置"""
        values = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **values)

    @property
    def email_enabled(self) -> bool:
        return bool(self.email_sender and self.email_recipients)

    def to_log_dict(self) -> Dict[str, Any]:
        return {
            'cert_directory': self.cert_directory,
            'output_directory': self.output_directory,
            'file_extension': self.file_extension,
            'concurrency': self.concurrency,
            'parallel': self.parallel,
            'log_level': self.log_level,
            'email_sender': self.email_sender,
            'email_recipients': ", ".join(self.email_recipients),
            'aws_region': self.aws_region,
        }
