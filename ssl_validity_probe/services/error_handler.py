"""
错误处理服务
"""
import errno
import ipaddress
import socket
import ssl
from typing import Any, Dict, List
from datetime import datetime, timezone
import logging


class ProbeError(Exception):
    """证书探测错误基类"""


class ResolutionError(ProbeError):
    """主机名解析失败（非超时）"""

    def __init__(self, host: str, cause: Exception):
        self.host = host
        self.cause = cause
        super().__init__(f"无法解析主机 {host}: {cause}")


class CheckCancelledError(ProbeError):
    """调用方取消了检查"""

    def __init__(self, host: str):
        self.host = host
        super().__init__(f"主机 {host} 的检查已被取消")


def is_ipv6(address: str) -> bool:
    try:
        return ipaddress.ip_address(address).version == 6
    except ValueError:
        return False


class NetworkErrorHandler:
    """网络错误处理器"""

    def __init__(self):
        """初始化网络错误处理器"""
        self.logger = logging.getLogger(__name__)

    def is_host_unreachable(self, error: Exception) -> bool:
        """
        判断是否为网络层的"无路由到主机"错误

        只识别EHOSTUNREACH。没有IPv6默认路由的Linux主机通常返回ENETUNREACH，
        这种情况不会被静默跳过，而是作为普通握手错误记录。

        Args:
            error: 异常对象

        Returns:
            bool: 是否为EHOSTUNREACH
        """
        return isinstance(error, OSError) and error.errno == errno.EHOSTUNREACH

    def is_unreachable_ipv6(self, address: str, error: Exception) -> bool:
        """
        判断是否为缺少IPv6连通性导致的错误

        只有IPv6地址且错误为"no route to host"时才返回True，
        其他任何错误（包括IPv4的同类错误）都视为普通握手失败。

        Args:
            address: IP地址
            error: 异常对象

        Returns:
            bool: 是否可以静默跳过该地址
        """
        return is_ipv6(address) and self.is_host_unreachable(error)

    def handle_handshake_error(self, address: str, error: Exception) -> Dict[str, Any]:
        """
        处理单个地址的TLS握手错误

        Args:
            address: IP地址
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'address': address,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.warning(f"{address:<15} - 握手失败，跳过该地址: {error_info['error_type']}: {error_info['error_message']}")

        return error_info

    def _get_suggested_action(self, error: Exception) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if isinstance(error, (socket.timeout, TimeoutError)):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.SSLCertVerificationError):
            return "证书验证失败，检查证书链和主机名是否匹配"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            return "SSL连接问题，检查服务器SSL配置"
        elif self.is_host_unreachable(error):
            return "无法路由到主机，检查防火墙和网络配置"
        elif isinstance(error, OSError) and error.errno == errno.ENETUNREACH:
            return "网络不可达，检查网络连接和路由"
        else:
            return "检查网络连接和服务器状态"

    def get_error_statistics(self, error_list: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            error_list: 错误信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not error_list:
            return {
                'total_errors': 0,
                'error_types': {},
                'most_common_error': None,
                'most_common_error_count': 0
            }

        error_types = {}
        for error_info in error_list:
            error_type = error_info.get('error_type', 'Unknown')
            error_types[error_type] = error_types.get(error_type, 0) + 1

        most_common_error = max(error_types.items(), key=lambda x: x[1])

        return {
            'total_errors': len(error_list),
            'error_types': error_types,
            'most_common_error': most_common_error[0],
            'most_common_error_count': most_common_error[1]
        }
