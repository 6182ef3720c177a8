"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CheckResult, ExpiryStatus
from .duration_formatter import format_duration


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "ssl_validity_probe", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.execution_stats = self._empty_stats()

    def _empty_stats(self) -> Dict[str, Any]:
        return {
            'total_checks': 0,
            'known_results': 0,
            'unknown_results': 0,
            'status_counts': {status.value: 0 for status in ExpiryStatus},
            'errors': []
        }

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_check_start(self, host: str):
        """
        记录检查开始

        Args:
            host: 要检查的主机名
        """
        self.execution_stats['total_checks'] += 1
        self.logger.info(f"开始检查主机 {host} 的SSL证书")

    def log_check_result(self, result: CheckResult, status: ExpiryStatus):
        """
        记录检查结果

        Args:
            result: 检查结果
            status: 告警级别
        """
        self.execution_stats['status_counts'][status.value] += 1

        if not result.is_known:
            self.execution_stats['unknown_results'] += 1
            self.logger.error(
                f"证书检查失败 - 主机: {result.host}, "
                f"地址数: {len(result.addresses)}, "
                f"错误数: {len(result.errors)}"
            )
            return

        self.execution_stats['known_results'] += 1
        message = (
            f"主机: {result.host}, "
            f"剩余有效期: {format_duration(result.remaining_validity)}, "
            f"剩余天数: {result.days_remaining} 天, "
            f"耗时: {result.execution_time:.2f} 秒"
        )

        if status == ExpiryStatus.CRITICAL:
            self.logger.warning(f"证书即将过期（严重） - {message}")
        elif status == ExpiryStatus.WARNING:
            self.logger.warning(f"证书即将过期 - {message}")
        else:
            self.logger.info(f"证书正常 - {message}")

    def log_error(self, host: str, error: Exception):
        """
        记录错误信息

        Args:
            host: 主机名
            error: 异常对象
        """
        error_info = {
            'host': host,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        }

        self.execution_stats['errors'].append(error_info)

        self.logger.error(
            f"主机 {host} 检查时发生错误: {type(error).__name__}: {str(error)}"
        )

        # 记录详细的堆栈跟踪（调试级别）
        self.logger.debug(f"主机 {host} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_notification_sent(self, notification_type: str, host: str, success: bool):
        """
        记录通知发送状态

        Args:
            notification_type: 通知类型（如 "SNS"）
            host: 告警对应的主机名
            success: 是否发送成功
        """
        if success:
            self.logger.info(f"{notification_type} 通知发送成功，主机: {host}")
        else:
            self.logger.error(f"{notification_type} 通知发送失败，主机: {host}")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()

            is_sensitive = (
                key_lower in {'password', 'secret', 'token', 'key', 'sns_topic_arn'} or
                key_lower.endswith('_key') or
                key_lower.endswith('_secret') or
                key_lower.endswith('_password') or
                key_lower.endswith('_token')
            )

            if is_sensitive and isinstance(value, str) and value:
                if 'arn:' in value:
                    # ARN类型，只显示前缀和后缀
                    parts = value.split(':')
                    if len(parts) >= 6:
                        safe_value = f"{':'.join(parts[:3])}:***:{parts[-2]}:{parts[-1]}"
                    else:
                        safe_value = "***"
                else:
                    safe_value = value[:3] + "***" if len(value) > 3 else "***"
                safe_config[key] = safe_value
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        total = self.execution_stats['total_checks']
        return {
            'total_checks': total,
            'known_results': self.execution_stats['known_results'],
            'unknown_results': self.execution_stats['unknown_results'],
            'success_rate': self.execution_stats['known_results'] / total if total > 0 else 0,
            'status_counts': dict(self.execution_stats['status_counts']),
            'error_count': len(self.execution_stats['errors']),
            'errors': self.execution_stats['errors']
        }

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = self._empty_stats()
