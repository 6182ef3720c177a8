"""
TLS握手检查服务
"""
import ssl
import socket
import logging
from datetime import datetime, timezone, timedelta
from typing import List, Optional, Sequence

from cryptography import x509
from cryptography.x509.oid import NameOID

from ..interfaces import HandshakeInspectorInterface
from ..models import CertificateObservation
from .duration_formatter import format_duration


class HandshakeInspector(HandshakeInspectorInterface):
    """TLS握手检查器实现"""

    def __init__(self, connect_timeout: float = 30.0, port: int = 443,
                 context: Optional[ssl.SSLContext] = None):
        """
        初始化握手检查器

        Args:
            connect_timeout: 连接超时时间（秒）
            port: SSL端口，默认443
            context: SSL上下文，默认使用系统信任库并校验主机名
        """
        self.connect_timeout = connect_timeout
        self.port = port
        self.context = context or ssl.create_default_context()
        self.logger = logging.getLogger(__name__)

    def inspect(self, address: str, host: str,
                deadline: Optional[datetime] = None) -> List[CertificateObservation]:
        """
        与单个IP地址进行TLS握手，提取已验证证书链中的叶子证书

        SNI和主机名校验都使用host，而不是IP地址本身。

        Args:
            address: 要连接的IP地址
            host: 期望的服务器主机名
            deadline: 握手的绝对截止时间

        Returns:
            List[CertificateObservation]: 按处理顺序排列的叶子证书

        Raises:
            OSError: 连接失败、握手失败或超过截止时间
        """
        with socket.create_connection((address, self.port),
                                      timeout=self._time_budget(deadline)) as sock:
            sock.settimeout(self._time_budget(deadline))
            with self.context.wrap_socket(sock, server_hostname=host) as tls_sock:
                chains = self._get_verified_chains(tls_sock)

        return self.walk_chains(address, chains)

    def _time_budget(self, deadline: Optional[datetime]) -> float:
        """
        计算本次操作可用的超时时间

        Args:
            deadline: 绝对截止时间

        Returns:
            float: 连接超时和截止时间剩余量中较小的一个（秒）

        Raises:
            TimeoutError: 已超过截止时间
        """
        if deadline is None:
            return self.connect_timeout

        remaining = (deadline - datetime.now(timezone.utc)).total_seconds()
        if remaining <= 0:
            raise TimeoutError("已超过握手截止时间")
        return min(self.connect_timeout, remaining)

    def _get_verified_chains(self, tls_sock: ssl.SSLSocket) -> List[List[bytes]]:
        """
        获取握手得到的已验证证书链（DER编码）

        Args:
            tls_sock: 已完成握手的SSL套接字

        Returns:
            List[List[bytes]]: 证书链列表
        """
        get_verified_chain = getattr(tls_sock, 'get_verified_chain', None)
        if callable(get_verified_chain):
            chain = get_verified_chain()
            if chain:
                return [[bytes(der) for der in chain]]

        # 较早的解释器只能拿到叶子证书
        leaf = tls_sock.getpeercert(binary_form=True)
        return [[leaf]] if leaf else []

    def walk_chains(self, address: str, chains: Sequence[Sequence[bytes]],
                    now: Optional[datetime] = None) -> List[CertificateObservation]:
        """
        遍历所有证书链中的所有证书

        同一连接内按签名去重，跳过CA证书，其余证书计算剩余有效期。

        Args:
            address: 证书来源的IP地址
            chains: DER编码的证书链列表
            now: 当前时间，默认取UTC当前时间

        Returns:
            List[CertificateObservation]: 叶子证书观测结果
        """
        now = now or datetime.now(timezone.utc)
        checked_signatures = set()
        observations = []

        for chain in chains:
            for der in chain:
                cert = x509.load_der_x509_certificate(der)

                if cert.signature in checked_signatures:
                    continue
                checked_signatures.add(cert.signature)

                common_name = self._parse_common_name(cert)

                if self._is_ca(cert):
                    self.logger.info(f"{address:<15} - 忽略CA证书 {common_name}")
                    continue

                not_after = cert.not_valid_after_utc
                remaining_validity = not_after - now
                self.logger.info(
                    f"{address:<15} - {common_name} 有效期至 {not_after.isoformat()} "
                    f"({format_duration(remaining_validity)})"
                )

                observations.append(CertificateObservation(
                    address=address,
                    common_name=common_name,
                    signature=cert.signature,
                    not_after=not_after,
                    remaining_validity=remaining_validity
                ))

        return observations

    def _parse_common_name(self, cert: x509.Certificate) -> str:
        attributes = cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME)
        if not attributes:
            return ""
        return str(attributes[0].value)

    def _is_ca(self, cert: x509.Certificate) -> bool:
        try:
            return cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca
        except x509.ExtensionNotFound:
            return False
