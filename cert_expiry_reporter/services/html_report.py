"""
HTML报告渲染服务
"""
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..interfaces import ReportRendererInterface
from ..models import CertificateRecord, CertificateStatus, ReportSummary
from .error_handler import ReportWriteError
from .expiry_calculator import ExpiryCalculator

TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")
TEMPLATE_NAME = "report.html"

DATE_FORMAT = "%Y-%m-%d"
DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# 状态徽章文本与样式
_BADGES = {
    CertificateStatus.VALID: ("Valid", "valid"),
    CertificateStatus.NOTICE: ("Expiring soon", "soon"),
    CertificateStatus.WARNING: ("Expiring soon", "soon"),
    CertificateStatus.CRITICAL: ("Critical warning", "critical"),
    CertificateStatus.EXPIRED: ("Expired", "expired"),
}


def badge_text(status: CertificateStatus) -> str:
    return _BADGES[status][0]


def days_left_text(days_left: int) -> str:
    return "Expired" if days_left < 0 else f"{days_left} days"


def record_details(record: CertificateRecord) -> Dict[str, Any]:
    """
    构建单行详情数据（嵌入在HTML中供客户端详情视图使用）

    Args:
        record: 证书记录

    Returns:
        Dict[str, Any]: 所有已解析字段
    """
    return {
        "fileName": record.file_name,
        "domain": record.domain,
        "subject": record.subject_raw,
        "issuer": record.issuer_raw,
        "issuerName": record.issuer_name,
        "notBefore": record.not_before.strftime(DATETIME_FORMAT),
        "notAfter": record.not_after.strftime(DATETIME_FORMAT),
        "daysLeft": record.days_left,
        "status": record.status.value,
        "thumbprint": record.thumbprint,
        "serialNumber": record.serial_number,
        "lastChecked": record.last_checked.strftime(DATETIME_FORMAT),
        "country": record.country,
        "organization": record.organization,
        "orgUnit": record.org_unit,
        "locality": record.locality,
        "state": record.state,
        "keyUsage": record.key_usage,
        "enhancedKeyUsage": record.enhanced_key_usage,
        "subjectAltNames": record.subject_alt_names,
    }


class HtmlReportRenderer(ReportRendererInterface):
    """HTML报告渲染器，输出自包含的交互式页面"""

    def __init__(self, template_dir: str = TEMPLATE_DIR):
        self.environment = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(["html"]),
            keep_trailing_newline=True,
        )

    def _build_rows(self, records: List[CertificateRecord]) -> List[Dict[str, Any]]:
        ordered = sorted(records, key=lambda r: (r.days_left, r.domain, r.file_name))
        rows = []
        for record in ordered:
            text, css_class = _BADGES[record.status]
            rows.append({
                "domain": record.domain,
                "badge_text": text,
                "badge_class": css_class,
                "issuer": record.issuer_name,
                "expiration": record.not_after.strftime(DATE_FORMAT),
                "expiration_sort": record.not_after.strftime(DATETIME_FORMAT),
                "days_left": record.days_left,
                "days_left_text": days_left_text(record.days_left),
                "last_checked": record.last_checked.strftime(DATE_FORMAT),
                "last_checked_sort": record.last_checked.strftime(DATETIME_FORMAT),
                "details": record_details(record),
            })
        return rows

    def render(self, records: List[CertificateRecord], summary: ReportSummary,
               generated_at: Optional[datetime] = None) -> str:
        """
        渲染HTML报告

        Args:
            records: 证书记录（按剩余天数升序显示）
            summary: 统计摘要
            generated_at: 报告生成时间，为None时不输出

        Returns:
            str: HTML文档
        """
        template = self.environment.get_template(TEMPLATE_NAME)
        return template.render(
            rows=self._build_rows(records),
            kpis={
                "total": summary.total,
                "valid": summary.valid,
                "expiring_soon": summary.expiring_soon,
                "critical": summary.critical,
            },
            generated_at=generated_at.strftime(DATETIME_FORMAT) if generated_at else None,
        )

    def write(self, records: List[CertificateRecord], path: str, summary: ReportSummary = None,
              generated_at: Optional[datetime] = None) -> str:
        """
        渲染并写入HTML文件

        Raises:
            ReportWriteError: 文件无法写入
        """
        if summary is None:
            summary = ExpiryCalculator().aggregate(records)
        content = self.render(records, summary, generated_at=generated_at)
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ReportWriteError(path, e) from e
        return path
