"""
数据模型定义
"""
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, List, Dict, Any


class ServiceStatus(Enum):
    """服务运行状态"""
    UNKNOWN = "unknown"
    STOPPED = "stopped"
    RUNNING = "running"


class CheckOutcome(Enum):
    """单次检查的结果类型"""
    VALID = "valid"
    UNREACHABLE = "unreachable"


class AggregationPolicy(Enum):
    """多个证书观测结果的汇总策略"""
    EARLIEST_EXPIRY = "earliest"
    LAST_PROCESSED = "last"


class ExpiryStatus(Enum):
    """证书有效期告警级别"""
    OK = "ok"
    WARNING = "warning"
    CRITICAL = "critical"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class ProbeConfig:
    """探测配置（构造后不可变）"""
    lookup_timeout: float = 10.0
    connect_timeout: float = 30.0
    deadline_grace: float = 5.0
    port: int = 443
    warning_days: int = 30
    critical_days: int = 14
    aggregation_policy: AggregationPolicy = AggregationPolicy.EARLIEST_EXPIRY
    max_parallel_handshakes: int = 1


@dataclass
class CertificateObservation:
    """一次握手中观测到的叶子证书"""
    address: str
    common_name: str
    signature: bytes
    not_after: datetime
    remaining_validity: timedelta


@dataclass
class CheckResult:
    """单个主机的检查结果"""
    host: str
    outcome: CheckOutcome
    remaining_validity: Optional[timedelta] = None
    addresses: List[str] = field(default_factory=list)
    observations: List[CertificateObservation] = field(default_factory=list)
    skipped_addresses: List[str] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    execution_time: float = 0.0

    @property
    def is_known(self) -> bool:
        """是否得到了可用的剩余有效期"""
        return self.outcome == CheckOutcome.VALID and self.remaining_validity is not None

    @property
    def days_remaining(self) -> Optional[int]:
        """剩余整天数（向下取整），未知时为None"""
        if not self.is_known:
            return None
        return math.floor(self.remaining_validity.total_seconds() / 86400)

    @property
    def remaining_validity_or_zero(self) -> timedelta:
        """未知时返回零时长"""
        return self.remaining_validity if self.is_known else timedelta(0)
