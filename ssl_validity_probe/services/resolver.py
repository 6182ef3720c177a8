"""
带超时的主机名解析服务
"""
import socket
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import List, Optional

from ..interfaces import ResolverInterface
from .error_handler import ResolutionError


class TimedResolver(ResolverInterface):
    """带超时的解析器实现"""

    def __init__(self, timeout: float = 10.0):
        """
        初始化解析器

        Args:
            timeout: 默认解析超时时间（秒）
        """
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def resolve(self, host: str, timeout: Optional[float] = None) -> List[str]:
        """
        解析主机名的A和AAAA记录

        解析在后台线程中进行，与超时计时器竞争：超时则返回空列表，
        解析本身出错则抛出ResolutionError。

        Args:
            host: 主机名
            timeout: 超时时间，如果为None则使用默认值

        Returns:
            List[str]: 按解析顺序排列、去重后的IP地址列表

        Raises:
            ResolutionError: 解析失败（非超时）
        """
        timeout = self.timeout if timeout is None else timeout

        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="resolver")
        try:
            future = executor.submit(self._lookup, host)
            try:
                addr_infos = future.result(timeout=timeout)
            except FutureTimeoutError:
                self.logger.warning(f"解析主机 {host} 超时（{timeout}秒）")
                future.cancel()
                return []
            except (OSError, UnicodeError) as e:
                self.logger.error(f"解析主机 {host} 失败: {type(e).__name__}: {str(e)}")
                raise ResolutionError(host, e) from e
        finally:
            # 超时的解析线程自行结束，不等待
            executor.shutdown(wait=False)

        addresses = self._unique_addresses(addr_infos)
        self.logger.debug(f"主机 {host} 解析到 {len(addresses)} 个地址: {', '.join(addresses)}")
        return addresses

    def _lookup(self, host: str) -> list:
        return socket.getaddrinfo(host, None, socket.AF_UNSPEC, socket.SOCK_STREAM)

    def _unique_addresses(self, addr_infos: list) -> List[str]:
        """
        从getaddrinfo结果中提取IP地址，保持顺序去重

        Args:
            addr_infos: getaddrinfo返回的元组列表

        Returns:
            List[str]: IP地址列表
        """
        addresses = []
        seen = set()
        for family, _, _, _, sockaddr in addr_infos:
            if family not in (socket.AF_INET, socket.AF_INET6):
                continue
            address = sockaddr[0]
            if address not in seen:
                seen.add(address)
                addresses.append(address)
        return addresses
