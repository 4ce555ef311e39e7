"""
CSV报告渲染服务
"""
import csv
import io
import os
from typing import Dict, List

from ..interfaces import ReportRendererInterface
from ..models import CertificateRecord, ReportSummary
from .error_handler import ReportWriteError

# 列顺序固定，下游系统依赖此顺序
CSV_COLUMNS = [
    "FileName",
    "Domain",
    "IssuerName",
    "NotBefore",
    "NotAfter",
    "DaysLeft",
    "Status",
    "Thumbprint",
    "SerialNumber",
    "Country",
    "Organization",
    "OrgUnit",
    "Locality",
    "State",
    "KeyUsage",
    "EnhancedKeyUsage",
    "SubjectAltNames",
]

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def record_to_row(record: CertificateRecord) -> Dict[str, str]:
    """将证书记录转换为CSV行"""
    return {
        "FileName": record.file_name,
        "Domain": record.domain,
        "IssuerName": record.issuer_name,
        "NotBefore": record.not_before.strftime(DATETIME_FORMAT),
        "NotAfter": record.not_after.strftime(DATETIME_FORMAT),
        "DaysLeft": str(record.days_left),
        "Status": record.status.value,
        "Thumbprint": record.thumbprint,
        "SerialNumber": record.serial_number,
        "Country": record.country,
        "Organization": record.organization,
        "OrgUnit": record.org_unit,
        "Locality": record.locality,
        "State": record.state,
        "KeyUsage": record.key_usage,
        "EnhancedKeyUsage": record.enhanced_key_usage,
        "SubjectAltNames": record.subject_alt_names,
    }


class CsvReportRenderer(ReportRendererInterface):
    """CSV报告渲染器（保持输入顺序，不重新排序）"""

    def render(self, records: List[CertificateRecord]) -> bytes:
        """
        渲染CSV内容

        Args:
            records: 证书记录

        Returns:
            bytes: UTF-8编码的CSV内容（无BOM）
        """
        buffer = io.StringIO(newline="")
        writer = csv.DictWriter(buffer, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        for record in records:
            writer.writerow(record_to_row(record))
        return buffer.getvalue().encode("utf-8")

    def write(self, records: List[CertificateRecord], path: str, summary: ReportSummary = None) -> str:
        """
        渲染并写入CSV文件

        Raises:
            ReportWriteError: 文件无法写入
        """
        content = self.render(records)
        try:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "wb") as f:
                f.write(content)
        except OSError as e:
            raise ReportWriteError(path, e) from e
        return path
