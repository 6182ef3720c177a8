"""
证书过期分级服务
"""
from ..models import CheckResult, ExpiryStatus
from .duration_formatter import format_duration


class ExpiryCalculator:
    """证书过期分级器"""

    def __init__(self, warning_days: int = 30, critical_days: int = 14):
        """
        初始化过期分级器

        Args:
            warning_days: 警告阈值天数，默认30天
            critical_days: 严重阈值天数，默认14天
        """
        self.warning_days = warning_days
        self.critical_days = critical_days

    def classify(self, result: CheckResult) -> ExpiryStatus:
        """
        根据剩余天数对检查结果分级

        Args:
            result: 检查结果

        Returns:
            ExpiryStatus: 告警级别（已过期视为CRITICAL）
        """
        if not result.is_known:
            return ExpiryStatus.UNKNOWN

        days = result.days_remaining
        if days <= self.critical_days:
            return ExpiryStatus.CRITICAL
        if days <= self.warning_days:
            return ExpiryStatus.WARNING
        return ExpiryStatus.OK

    def needs_alert(self, status: ExpiryStatus) -> bool:
        return status != ExpiryStatus.OK

    def get_expiry_summary(self, result: CheckResult) -> str:
        """
        获取过期状态摘要

        Args:
            result: 检查结果

        Returns:
            str: 摘要信息
        """
        status = self.classify(result)

        summary_parts = [
            f"主机: {result.host}",
            f"状态: {status.value.upper()}"
        ]

        if result.is_known:
            summary_parts.append(f"剩余: {format_duration(result.remaining_validity)}")
            if result.days_remaining < 0:
                summary_parts.append(f"已过期: {abs(result.days_remaining)} 天")
        else:
            summary_parts.append("无法检查证书")

        summary_parts.append(f"地址: {len(result.addresses)} 个")
        if result.skipped_addresses:
            summary_parts.append(f"跳过: {len(result.skipped_addresses)} 个")

        return ", ".join(summary_parts)
