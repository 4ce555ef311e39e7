"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List, Dict


class CertificateStatus(str, Enum):
    """证书过期状态"""
    EXPIRED = "Expired"
    CRITICAL = "Critical"
    WARNING = "Warning"
    NOTICE = "Notice"
    VALID = "Valid"


@dataclass(frozen=True)
class CertificateRecord:
    """单个证书文件解析后的记录（创建后不可修改）"""
    file_name: str
    domain: str
    subject_raw: str
    issuer_raw: str
    issuer_name: str
    not_before: datetime
    not_after: datetime
    thumbprint: str
    serial_number: str
    days_left: int
    status: CertificateStatus
    last_checked: datetime
    country: str = ""
    organization: str = ""
    org_unit: str = ""
    locality: str = ""
    state: str = ""
    key_usage: str = ""
    enhanced_key_usage: str = ""
    subject_alt_names: str = ""

    @property
    def is_expired(self) -> bool:
        """判断是否已过期"""
        return self.status is CertificateStatus.EXPIRED

    @property
    def is_expiring_soon(self) -> bool:
        """判断是否即将过期（Notice 或 Warning）"""
        return self.status in (CertificateStatus.NOTICE, CertificateStatus.WARNING)


@dataclass(frozen=True)
class ExtractionFailure:
    """单个证书文件解析失败的信息"""
    path: str
    error_type: str
    error_message: str
    suggested_action: str = ""
    timestamp: Optional[datetime] = None

    @property
    def file_name(self) -> str:
        return self.path.replace("\\", "/").rsplit("/", 1)[-1]


@dataclass
class ScanResult:
    """目录扫描结果"""
    total_files: int
    records: List[CertificateRecord] = field(default_factory=list)
    failures: List[ExtractionFailure] = field(default_factory=list)

    @property
    def successful_count(self) -> int:
        return len(self.records)

    @property
    def failed_count(self) -> int:
        return len(self.failures)


@dataclass(frozen=True)
class ReportSummary:
    """报告统计摘要"""
    total: int = 0
    valid: int = 0
    notice: int = 0
    warning: int = 0
    critical: int = 0
    expired: int = 0

    @property
    def expiring_soon(self) -> int:
        """即将过期数量（Notice + Warning）"""
        return self.notice + self.warning

    @property
    def critical_or_expired(self) -> int:
        """严重与已过期数量之和（HTML 筛选分组使用）"""
        return self.critical + self.expired

    def counts_by_status(self) -> Dict[CertificateStatus, int]:
        return {
            CertificateStatus.EXPIRED: self.expired,
            CertificateStatus.CRITICAL: self.critical,
            CertificateStatus.WARNING: self.warning,
            CertificateStatus.NOTICE: self.notice,
            CertificateStatus.VALID: self.valid,
        }


@dataclass
class ReportArtifacts:
    """已生成的报告文件路径"""
    csv_path: Optional[str] = None
    html_path: Optional[str] = None

    def written_paths(self) -> List[str]:
        return [path for path in (self.csv_path, self.html_path) if path]


@dataclass
class RunResult:
    """一次运行的结果统计"""
    success: bool
    total_files: int
    summary: ReportSummary
    artifacts: ReportArtifacts
    failures: List[ExtractionFailure]
    errors: List[str]
    execution_time: float
    notification_sent: bool = False
