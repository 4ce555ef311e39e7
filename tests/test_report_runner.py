"""
报告运行器测试
"""
import csv
import logging
import pytest
import os
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone
from io import StringIO

from cert_expiry_reporter.config import ReporterConfig
from cert_expiry_reporter.report_runner import CertificateReportRunner, build_arg_parser, main
from cert_expiry_reporter.services.error_handler import ReportWriteError
from cert_expiry_reporter.services.logger import LoggerService

NOW = datetime(2024, 6, 1, 7, 45, 30, tzinfo=timezone.utc)


class TestCertificateReportRunner:
    """报告运行器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.logger_service = LoggerService(logger_name="test_runner")
        self.log_stream = StringIO()
        handler = logging.StreamHandler(self.log_stream)
        handler.setFormatter(logging.Formatter('%(levelname)s - %(message)s'))
        self.logger_service.logger.handlers.clear()
        self.logger_service.logger.addHandler(handler)
        self.logger_service.logger.setLevel(logging.DEBUG)

    def make_runner(self, cert_dir, output_dir, **components):
        config = ReporterConfig(cert_directory=str(cert_dir), output_directory=str(output_dir))
        return CertificateReportRunner(config, logger_service=self.logger_service, **components)

    def test_report_paths(self, tmp_path):
        runner = self.make_runner(tmp_path, tmp_path / "out")

        paths = runner.report_paths(NOW)

        assert paths.csv_path == os.path.join(str(tmp_path / "out"), "certificate_report_20240601_074530.csv")
        assert paths.html_path == os.path.join(str(tmp_path / "out"), "certificate_report_20240601_074530.html")

    def test_missing_directory(self, tmp_path):
        """证书目录不存在时运行失败且不生成任何文件"""
        output_dir = tmp_path / "out"
        runner = self.make_runner(tmp_path / "missing", output_dir)

        result = runner.execute(now=NOW)

        assert result.success is False
        assert result.total_files == 0
        assert result.artifacts.written_paths() == []
        assert any("证书目录不存在" in error for error in result.errors)
        assert not output_dir.exists()

    def test_empty_directory(self, cert_factory, tmp_path):
        """空目录：成功但不生成报告"""
        output_dir = tmp_path / "out"
        runner = self.make_runner(cert_factory.directory, output_dir)

        result = runner.execute(now=NOW)

        assert result.success is True
        assert result.total_files == 0
        assert result.artifacts.written_paths() == []
        assert not output_dir.exists()
        assert "没有找到 .cer 证书文件" in self.log_stream.getvalue()

    def test_full_run(self, cert_factory, tmp_path):
        """完整运行：一个损坏文件不影响其余报告"""
        cert_factory("valid.cer", common_name="valid.example.com", days=120)
        cert_factory("soon.cer", common_name="soon.example.com", days=5)
        cert_factory("gone.cer", der=True, common_name="gone.example.com", days=-3)
        (cert_factory.directory / "broken.cer").write_bytes(b"garbage")

        runner = self.make_runner(cert_factory.directory, tmp_path / "out")
        result = runner.execute(now=NOW)

        assert result.success is True
        assert result.total_files == 4
        assert result.summary.total == 3
        assert result.summary.valid == 1
        assert result.summary.warning == 1
        assert result.summary.expired == 1
        assert len(result.failures) == 1
        assert result.failures[0].file_name == "broken.cer"
        assert result.notification_sent is False

        with open(result.artifacts.csv_path, encoding="utf-8", newline="") as f:
            rows = list(csv.DictReader(f))
        assert sorted(row["Domain"] for row in rows) == ["gone.example.com", "soon.example.com", "valid.example.com"]

        with open(result.artifacts.html_path, encoding="utf-8") as f:
            document = f.read()
        assert "Generated at 2024-06-01 07:45:30 UTC" in document
        assert document.index("gone.example.com") < document.index("valid.example.com")

        log_output = self.log_stream.getvalue()
        assert "CertificateDecodeError" in log_output
        assert "最常见错误: CertificateDecodeError (1 次)" in log_output

    def test_csv_failure_still_writes_html(self, cert_factory, tmp_path):
        """CSV写入失败不影响HTML报告"""
        cert_factory("a.cer")
        csv_renderer = MagicMock()
        csv_renderer.write.side_effect = ReportWriteError("/readonly/r.csv", PermissionError("denied"))

        result = self.make_runner(cert_factory.directory, tmp_path / "out", csv_renderer=csv_renderer).execute(now=NOW)

        assert result.success is True
        assert result.artifacts.csv_path is None
        assert os.path.exists(result.artifacts.html_path)
        assert any(error.startswith("CSV:") for error in result.errors)
        assert "ERROR - CSV 报告生成失败" in self.log_stream.getvalue()

    def test_all_files_fail_still_writes_reports(self, tmp_path):
        cert_dir = tmp_path / "certs"
        cert_dir.mkdir()
        (cert_dir / "x.cer").write_bytes(b"nope")

        result = self.make_runner(cert_dir, tmp_path / "out").execute(now=NOW)

        assert result.success is True
        assert result.summary.total == 0
        assert len(result.artifacts.written_paths()) == 2

    def test_notification_sent(self, cert_factory, tmp_path):
        cert_factory("a.cer", days=1)
        notifier = MagicMock()
        notifier.recipients = ["ops@example.com"]
        notifier.send_report.return_value = True

        result = self.make_runner(cert_factory.directory, tmp_path / "out",
                                  notification_service=notifier).execute(now=NOW)

        assert result.notification_sent is True
        summary, attachments = notifier.send_report.call_args[0]
        assert summary.critical == 1
        assert attachments == [result.artifacts.csv_path, result.artifacts.html_path]

    def test_notification_error_does_not_fail_run(self, cert_factory, tmp_path):
        """通知异常只记录日志"""
        cert_factory("a.cer")
        notifier = MagicMock()
        notifier.send_report.side_effect = RuntimeError("SES down")

        result = self.make_runner(cert_factory.directory, tmp_path / "out",
                                  notification_service=notifier).execute(now=NOW)

        assert result.success is True
        assert result.notification_sent is False
        assert "发送邮件通知时发生错误: SES down" in self.log_stream.getvalue()

    def test_repeated_runs_do_not_accumulate_stats(self, cert_factory, tmp_path):
        """同一运行器多次执行时统计不累加"""
        cert_factory("a.cer")
        cert_factory("b.cer")
        runner = self.make_runner(cert_factory.directory, tmp_path / "out")

        runner.execute(now=NOW)
        runner.execute(now=NOW)

        summary = self.logger_service.get_execution_summary()
        assert summary['total_files'] == 2
        assert summary['successful_checks'] == 2
        assert summary['success_rate'] == 1.0

    @patch('cert_expiry_reporter.report_runner.EmailNotificationService')
    def test_email_service_created_when_configured(self, mock_email, tmp_path):
        config = ReporterConfig(cert_directory=str(tmp_path), email_sender="r@example.com",
                                email_recipients=("ops@example.com",), aws_region="eu-west-1")

        runner = CertificateReportRunner(config, logger_service=self.logger_service)

        assert runner.notification_service == mock_email.return_value
        mock_email.assert_called_once_with(sender="r@example.com", recipients=["ops@example.com"],
                                           region_name="eu-west-1")


class TestMain:
    """命令行入口测试"""

    def test_arg_parser(self):
        args = build_arg_parser().parse_args(["--cert-dir", "/c", "--concurrency", "3", "--sequential", "--no-email"])

        assert args.cert_directory == "/c"
        assert args.concurrency == 3
        assert args.sequential is True
        assert args.no_email is True

    @patch.dict(os.environ, {}, clear=True)
    def test_success_exit_code(self, cert_factory, tmp_path):
        cert_factory("a.cer")
        output_dir = tmp_path / "out"

        code = main(["--cert-dir", str(cert_factory.directory), "--output-dir", str(output_dir), "--sequential"])

        assert code == 0
        assert len(list(output_dir.iterdir())) == 2

    @patch.dict(os.environ, {}, clear=True)
    def test_missing_directory_exit_code(self, tmp_path):
        code = main(["--cert-dir", str(tmp_path / "missing"), "--output-dir", str(tmp_path / "out")])

        assert code == 1
        assert not (tmp_path / "out").exists()

    @patch.dict(os.environ, {}, clear=True)
    def test_invalid_settings_exit_code(self, tmp_path):
        """无效的并发数返回退出码2"""
        code = main(["--cert-dir", str(tmp_path), "--concurrency", "0"])

        assert code == 2

    @patch.dict(os.environ, {'SCAN_CONCURRENCY': 'lots'}, clear=True)
    def test_invalid_env_concurrency_exit_code(self, tmp_path):
        """环境变量中的并发数不是整数时返回退出码2"""
        code = main(["--cert-dir", str(tmp_path)])

        assert code == 2

    @patch.dict(os.environ, {'CERT_DIRECTORY': '/from/env', 'EMAIL_SENDER': 'r@example.com',
                             'EMAIL_RECIPIENTS': 'ops@example.com'}, clear=True)
    @patch('cert_expiry_reporter.report_runner.CertificateReportRunner')
    def test_cli_overrides_env(self, mock_runner, tmp_path):
        mock_runner.return_value.execute.return_value = MagicMock(success=True)

        code = main(["--cert-dir", str(tmp_path), "--no-email", "--log-level", "debug"])

        config = mock_runner.call_args[0][0]
        assert code == 0
        assert config.cert_directory == str(tmp_path)
        assert config.email_enabled is False
        assert config.log_level == "DEBUG"
