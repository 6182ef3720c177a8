"""
服务接口定义
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from .models import CertificateObservation, CheckResult, ExpiryStatus


class ResolverInterface(ABC):
    """主机名解析器接口"""

    @abstractmethod
    def resolve(self, host: str, timeout: Optional[float] = None) -> List[str]:
        """解析主机名，返回IP地址列表"""
        pass


class HandshakeInspectorInterface(ABC):
    """TLS握手检查器接口"""

    @abstractmethod
    def inspect(self, address: str, host: str,
                deadline: Optional[datetime] = None) -> List[CertificateObservation]:
        """与单个IP握手并返回叶子证书观测结果"""
        pass


class CertificateProbeInterface(ABC):
    """证书探测器接口"""

    @abstractmethod
    def check(self, host: str, cancel_event: Optional[threading.Event] = None) -> CheckResult:
        """检查主机证书的剩余有效期"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send_expiry_alert(self, result: CheckResult, status: ExpiryStatus) -> bool:
        """发送证书有效期告警"""
        pass

    @abstractmethod
    def format_notification_content(self, result: CheckResult, status: ExpiryStatus) -> str:
        """格式化通知内容"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, host: str):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_check_result(self, result: CheckResult, status: ExpiryStatus):
        """记录检查结果"""
        pass

    @abstractmethod
    def log_error(self, host: str, error: Exception):
        """记录错误信息"""
        pass
