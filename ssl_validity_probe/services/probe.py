"""
证书有效期探测服务
"""
import time
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone, timedelta
from typing import Iterator, List, Optional, Tuple

from ..interfaces import CertificateProbeInterface, ResolverInterface, HandshakeInspectorInterface
from ..models import (
    AggregationPolicy,
    CertificateObservation,
    CheckOutcome,
    CheckResult,
    ProbeConfig,
    ServiceStatus,
)
from .error_handler import NetworkErrorHandler, CheckCancelledError
from .handshake_inspector import HandshakeInspector
from .resolver import TimedResolver
from .duration_formatter import format_duration


InspectionOutcome = Tuple[str, List[CertificateObservation], Optional[Exception]]


class CertificateProbe(CertificateProbeInterface):
    """证书探测器实现"""

    def __init__(self, config: Optional[ProbeConfig] = None,
                 resolver: Optional[ResolverInterface] = None,
                 inspector: Optional[HandshakeInspectorInterface] = None,
                 error_handler: Optional[NetworkErrorHandler] = None):
        """
        初始化证书探测器

        Args:
            config: 探测配置，默认使用ProbeConfig()
            resolver: 主机名解析器
            inspector: TLS握手检查器
            error_handler: 网络错误处理器
        """
        self.config = config or ProbeConfig()
        self.resolver = resolver or TimedResolver(timeout=self.config.lookup_timeout)
        self.inspector = inspector or HandshakeInspector(
            connect_timeout=self.config.connect_timeout,
            port=self.config.port
        )
        self.error_handler = error_handler or NetworkErrorHandler()
        self.logger = logging.getLogger(__name__)
        self._status = ServiceStatus.UNKNOWN

    @property
    def status(self) -> ServiceStatus:
        return self._status

    def init(self):
        """初始化服务状态"""
        self._status = ServiceStatus.STOPPED

    def start(self):
        """启动服务"""
        if self._status == ServiceStatus.STOPPED:
            self._status = ServiceStatus.RUNNING

    def stop(self):
        """停止服务"""
        self._status = ServiceStatus.STOPPED

    def check(self, host: str, cancel_event: Optional[threading.Event] = None) -> CheckResult:
        """
        检查主机证书的剩余有效期

        先解析主机的所有地址，再逐个地址握手并提取叶子证书。单个地址的失败
        不会中断检查；没有任何地址给出证书时结果为UNREACHABLE。

        Args:
            host: 主机名
            cancel_event: 取消事件，设置后在下一个检查点中止

        Returns:
            CheckResult: 检查结果

        Raises:
            ResolutionError: 主机名解析失败
            CheckCancelledError: 检查被取消
        """
        start_time = time.monotonic()

        self._raise_if_cancelled(host, cancel_event)
        addresses = self.resolver.resolve(host, self.config.lookup_timeout)

        result = CheckResult(host=host, outcome=CheckOutcome.UNREACHABLE, addresses=addresses)

        if not addresses:
            self.logger.warning(f"主机 {host} 没有可用的地址")

        for address, observations, error in self._inspect_addresses(host, addresses, cancel_event):
            if error is None:
                result.observations.extend(observations)
                continue

            result.skipped_addresses.append(address)
            if self.error_handler.is_unreachable_ipv6(address, error):
                self.logger.info(f"{address:<15} - 忽略不可达的IPv6地址")
            else:
                result.errors.append(self.error_handler.handle_handshake_error(address, error))

        result.remaining_validity = self._aggregate(result.observations)
        if result.remaining_validity is not None:
            result.outcome = CheckOutcome.VALID
            self.logger.info(f"主机 {host} 证书剩余有效期: {format_duration(result.remaining_validity)}")
        else:
            self.logger.warning(f"主机 {host} 没有检查到可用的证书")

        result.execution_time = time.monotonic() - start_time
        return result

    def remaining_validity(self, host: str) -> timedelta:
        """
        返回主机证书的剩余有效期，无法检查时返回零时长

        Args:
            host: 主机名

        Returns:
            timedelta: 剩余有效期
        """
        return self.check(host).remaining_validity_or_zero

    def _inspect_addresses(self, host: str, addresses: List[str],
                           cancel_event: Optional[threading.Event]) -> Iterator[InspectionOutcome]:
        """
        按解析顺序检查各个地址

        并发度大于1时在线程池中执行，但结果仍按解析顺序返回。

        Args:
            host: 主机名
            addresses: IP地址列表
            cancel_event: 取消事件

        Yields:
            InspectionOutcome: (地址, 观测结果, 错误)
        """
        workers = min(self.config.max_parallel_handshakes, len(addresses))

        if workers <= 1:
            for address in addresses:
                self._raise_if_cancelled(host, cancel_event)
                yield self._inspect_one(host, address)
            return

        self._raise_if_cancelled(host, cancel_event)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="handshake") as executor:
            futures = [executor.submit(self._inspect_one, host, address) for address in addresses]
            for future in futures:
                if cancel_event is not None and cancel_event.is_set():
                    for pending in futures:
                        pending.cancel()
                    raise CheckCancelledError(host)
                yield future.result()

    def _inspect_one(self, host: str, address: str) -> InspectionOutcome:
        try:
            deadline = datetime.now(timezone.utc) + timedelta(
                seconds=self.config.connect_timeout + self.config.deadline_grace
            )
            return address, self.inspector.inspect(address, host, deadline), None
        except (OSError, ValueError, OverflowError) as e:
            return address, [], e

    def _aggregate(self, observations: List[CertificateObservation]) -> Optional[timedelta]:
        """
        按配置的策略汇总剩余有效期

        Args:
            observations: 全部地址的叶子证书观测结果（按处理顺序）

        Returns:
            Optional[timedelta]: 剩余有效期，没有观测结果时为None
        """
        if not observations:
            return None

        if self.config.aggregation_policy == AggregationPolicy.LAST_PROCESSED:
            return observations[-1].remaining_validity

        return min(observation.remaining_validity for observation in observations)

    def _raise_if_cancelled(self, host: str, cancel_event: Optional[threading.Event]):
        if cancel_event is not None and cancel_event.is_set():
            self.logger.info(f"主机 {host} 的检查已被取消")
            raise CheckCancelledError(host)
