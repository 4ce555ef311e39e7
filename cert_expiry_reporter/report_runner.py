"""
证书过期报告运行入口
"""
import argparse
import os
import sys
from datetime import datetime, timezone
from typing import List, Optional

from .config import ReporterConfig
from .models import ReportArtifacts, ReportSummary, RunResult, CertificateRecord
from .services.certificate_scanner import CertificateScanner
from .services.config_validator import ConfigValidator
from .services.csv_report import CsvReportRenderer
from .services.email_notification import EmailNotificationService
from .services.error_handler import ExtractionErrorHandler, InputDirectoryNotFoundError
from .services.expiry_calculator import ExpiryCalculator
from .services.html_report import HtmlReportRenderer
from .services.logger import LoggerService


class CertificateReportRunner:
    """证书过期报告主类"""

    def __init__(self, config: Optional[ReporterConfig] = None,
                 logger_service: Optional[LoggerService] = None,
                 scanner: Optional[CertificateScanner] = None,
                 csv_renderer: Optional[CsvReportRenderer] = None,
                 html_renderer: Optional[HtmlReportRenderer] = None,
                 notification_service: Optional[EmailNotificationService] = None,
                 expiry_calculator: Optional[ExpiryCalculator] = None):
        """
        初始化报告运行器

        Args:
            config: 运行配置，默认从环境变量构建
            其余参数: 可替换的服务组件（测试时注入）
        """
        self.config = config or ReporterConfig.from_env()
        self.logger_service = logger_service or LoggerService(log_level=self.config.log_level)
        self.scanner = scanner or CertificateScanner(
            logger_service=self.logger_service,
            file_extension=self.config.file_extension
        )
        self.csv_renderer = csv_renderer or CsvReportRenderer()
        self.html_renderer = html_renderer or HtmlReportRenderer()
        self.expiry_calculator = expiry_calculator or ExpiryCalculator()
        self.error_handler = ExtractionErrorHandler()

        self.notification_service = notification_service
        if self.notification_service is None and self.config.email_enabled:
            self.notification_service = EmailNotificationService(
                sender=self.config.email_sender,
                recipients=list(self.config.email_recipients),
                region_name=self.config.aws_region
            )

        self.logger_service.log_configuration_info(self.config.to_log_dict())

    def execute(self, now: Optional[datetime] = None) -> RunResult:
        """
        执行扫描并生成报告

        Args:
            now: 报告时间戳，默认为当前UTC时间

        Returns:
            RunResult: 运行结果
        """
        self.logger_service.reset_stats()
        start_time = datetime.now(timezone.utc)
        generated_at = now or start_time
        logger = self.logger_service.logger

        try:
            files = self.scanner.list_certificate_files(self.config.cert_directory)
        except InputDirectoryNotFoundError as e:
            logger.error(f"{str(e)}，运行终止，不生成任何报告")
            return self._result(False, 0, start_time, errors=[str(e)])

        if not files:
            logger.warning(
                f"目录 {self.config.cert_directory} 中没有找到 {self.config.file_extension} 证书文件，不生成报告"
            )
            return self._result(True, 0, start_time)

        self.logger_service.log_scan_start(len(files))
        scan_result = self.scanner.scan_files(
            files,
            concurrency=self.config.concurrency,
            parallel=self.config.parallel
        )
        self.logger_service.log_scan_end(scan_result)

        if scan_result.failures:
            stats = self.error_handler.get_error_statistics(scan_result.failures)
            logger.warning(
                f"{stats['total_errors']} 个证书文件解析失败，"
                f"最常见错误: {stats['most_common_error']} ({stats['most_common_error_count']} 次)"
            )

        summary = self.expiry_calculator.aggregate(scan_result.records)
        logger.info(self.expiry_calculator.get_expiry_summary(summary))

        artifacts, errors = self._write_reports(scan_result.records, summary, generated_at)
        notification_sent = self._send_notification(summary, artifacts)

        self.logger_service.log_execution_summary()

        return self._result(
            True,
            scan_result.total_files,
            start_time,
            summary=summary,
            artifacts=artifacts,
            failures=scan_result.failures,
            errors=errors + [f"{f.path}: {f.error_type}: {f.error_message}" for f in scan_result.failures],
            notification_sent=notification_sent
        )

    def report_paths(self, generated_at: datetime) -> ReportArtifacts:
        """计算本次运行的报告文件路径"""
        stamp = generated_at.strftime('%Y%m%d_%H%M%S')
        base = os.path.join(self.config.output_directory, f"{self.config.report_basename}_{stamp}")
        return ReportArtifacts(csv_path=f"{base}.csv", html_path=f"{base}.html")

    def _write_reports(self, records: List[CertificateRecord], summary: ReportSummary,
                       generated_at: datetime):
        """
        分别生成CSV和HTML报告，一个失败不影响另一个

        Returns:
            Tuple[ReportArtifacts, List[str]]: 成功写入的报告路径和错误信息
        """
        planned = self.report_paths(generated_at)
        artifacts = ReportArtifacts()
        errors = []

        try:
            artifacts.csv_path = self.csv_renderer.write(records, planned.csv_path)
            self.logger_service.log_artifact_written("CSV", artifacts.csv_path)
        except Exception as e:
            self.logger_service.log_artifact_failed("CSV", planned.csv_path, e)
            errors.append(f"CSV: {str(e)}")

        try:
            artifacts.html_path = self.html_renderer.write(
                records, planned.html_path, summary=summary, generated_at=generated_at
            )
            self.logger_service.log_artifact_written("HTML", artifacts.html_path)
        except Exception as e:
            self.logger_service.log_artifact_failed("HTML", planned.html_path, e)
            errors.append(f"HTML: {str(e)}")

        return artifacts, errors

    def _send_notification(self, summary: ReportSummary, artifacts: ReportArtifacts) -> bool:
        """
        发送邮件通知（失败只记录日志，不影响运行结果）

        Returns:
            bool: 通知是否发送成功
        """
        logger = self.logger_service.logger

        if self.notification_service is None:
            logger.info("邮件通知未配置，跳过发送")
            return False

        attachments = artifacts.written_paths()
        if not attachments:
            logger.warning("没有成功生成的报告，跳过邮件通知")
            return False

        recipient_count = len(getattr(self.notification_service, 'recipients', []))
        try:
            sent = self.notification_service.send_report(summary, attachments)
        except Exception as e:
            logger.error(f"发送邮件通知时发生错误: {str(e)}")
            sent = False

        self.logger_service.log_notification_sent("Email", recipient_count, sent)
        return sent

    def _result(self, success: bool, total_files: int, start_time: datetime,
                summary: Optional[ReportSummary] = None,
                artifacts: Optional[ReportArtifacts] = None,
                failures=None, errors=None, notification_sent: bool = False) -> RunResult:
        execution_time = (datetime.now(timezone.utc) - start_time).total_seconds()
        return RunResult(
            success=success,
            total_files=total_files,
            summary=summary or ReportSummary(),
            artifacts=artifacts or ReportArtifacts(),
            failures=list(failures or []),
            errors=list(errors or []),
            execution_time=execution_time,
            notification_sent=notification_sent
        )


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cert-expiry-report",
        description="Scan exported certificates and generate CSV/HTML expiration reports."
    )
    parser.add_argument("--cert-dir", dest="cert_directory", help="directory containing certificate files")
    parser.add_argument("--output-dir", dest="output_directory", help="directory for generated reports")
    parser.add_argument("--extension", dest="file_extension", help="certificate file extension (default .cer)")
    parser.add_argument("--concurrency", type=int, help="maximum number of parallel workers")
    parser.add_argument("--sequential", action="store_true", help="process files one at a time")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING or ERROR")
    parser.add_argument("--no-email", action="store_true", help="do not send the summary email")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    命令行入口

    Returns:
        int: 退出码（0成功，1证书目录不存在，2配置无效）
    """
    args = build_arg_parser().parse_args(argv)

    try:
        env_config = ReporterConfig.from_env()
    except ValueError as e:
        LoggerService().logger.error(f"环境变量配置无效: {str(e)}")
        return 2

    config = env_config.with_overrides(
        cert_directory=args.cert_directory,
        output_directory=args.output_directory,
        file_extension=args.file_extension,
        concurrency=args.concurrency,
        log_level=args.log_level.upper() if args.log_level else None,
        parallel=False if args.sequential else None,
        email_recipients=() if args.no_email else None
    )

    logger_service = LoggerService(log_level=config.log_level)
    validator = ConfigValidator()
    logger_service.logger.debug(validator.get_configuration_summary(config))
    scan_validation = validator.validate_scan_settings(config)
    for warning in scan_validation['warnings']:
        logger_service.logger.warning(warning)
    if not scan_validation['is_valid']:
        for error in scan_validation['errors']:
            logger_service.logger.error(error)
        return 2

    result = CertificateReportRunner(config, logger_service=logger_service).execute()
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
