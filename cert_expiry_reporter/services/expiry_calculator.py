"""
证书过期计算服务
"""
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..models import CertificateRecord, CertificateStatus, ReportSummary

# 固定阈值策略（包含边界）
CRITICAL_MAX_DAYS = 2
WARNING_MAX_DAYS = 7
NOTICE_MAX_DAYS = 30


def calculate_days_until_expiry(not_after: datetime, now: Optional[datetime] = None) -> int:
    """
    计算距离过期的整天数（向下取整）

    Args:
        not_after: 证书过期时间
        now: 当前时间，默认为当前UTC时间

    Returns:
        int: 剩余天数（负数表示已过期）
    """
    now = now or datetime.now(timezone.utc)
    delta = not_after - now
    return delta.days


def classify(days_left: int) -> CertificateStatus:
    """
    根据剩余天数确定证书状态

    Args:
        days_left: 剩余天数

    Returns:
        CertificateStatus: 证书状态
    """
    if days_left < 0:
        return CertificateStatus.EXPIRED
    if days_left <= CRITICAL_MAX_DAYS:
        return CertificateStatus.CRITICAL
    if days_left <= WARNING_MAX_DAYS:
        return CertificateStatus.WARNING
    if days_left <= NOTICE_MAX_DAYS:
        return CertificateStatus.NOTICE
    return CertificateStatus.VALID


class ExpiryCalculator:
    """证书过期计算器"""

    def calculate_days_until_expiry(self, not_after: datetime, now: Optional[datetime] = None) -> int:
        return calculate_days_until_expiry(not_after, now)

    def classify(self, days_left: int) -> CertificateStatus:
        return classify(days_left)

    def aggregate(self, records: Iterable[CertificateRecord]) -> ReportSummary:
        """
        按状态统计证书数量（单次遍历）

        Args:
            records: 证书记录

        Returns:
            ReportSummary: 统计摘要
        """
        counts = {status: 0 for status in CertificateStatus}
        total = 0
        for record in records:
            counts[record.status] += 1
            total += 1

        return ReportSummary(
            total=total,
            valid=counts[CertificateStatus.VALID],
            notice=counts[CertificateStatus.NOTICE],
            warning=counts[CertificateStatus.WARNING],
            critical=counts[CertificateStatus.CRITICAL],
            expired=counts[CertificateStatus.EXPIRED],
        )

    def get_expiry_summary(self, summary: ReportSummary) -> str:
        """
        获取过期状态摘要

        Args:
            summary: 统计摘要

        Returns:
            str: 摘要信息
        """
        summary_parts = [
            f"总计: {summary.total} 个证书",
            f"有效: {summary.valid} 个",
        ]

        if summary.expiring_soon:
            summary_parts.append(f"即将过期({NOTICE_MAX_DAYS}天内): {summary.expiring_soon} 个")

        if summary.critical:
            summary_parts.append(f"严重: {summary.critical} 个")

        if summary.expired:
            summary_parts.append(f"已过期: {summary.expired} 个")

        return ", ".join(summary_parts)
