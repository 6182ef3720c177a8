"""
AWS Lambda函数入口点
"""
import os
from typing import Dict, Any, Optional
from datetime import datetime, timezone
from urllib.parse import unquote

from .services.config_validator import ConfigValidator
from .services.probe import CertificateProbe
from .services.sns_notification import SNSNotificationService
from .services.logger import LoggerService
from .services.expiry_calculator import ExpiryCalculator
from .services.error_handler import ResolutionError
from .models import CheckResult, ServiceStatus


VERSION = "-[SSL Validity Probe v1.1]-"


class SSLValidityService:
    """SSL证书有效期探测服务主类"""

    def __init__(self):
        """初始化服务"""
        self.logger_service = LoggerService()
        self.config_validator = ConfigValidator()
        self.config = self.config_validator.build_probe_config()

        self.probe = CertificateProbe(self.config)
        self.expiry_calculator = ExpiryCalculator(
            warning_days=self.config.warning_days,
            critical_days=self.config.critical_days
        )
        self.notification_service = SNSNotificationService()

        self._log_configuration()

        self.probe.init()
        self.probe.start()

    def _log_configuration(self):
        """记录系统配置信息"""
        config = {
            'lookup_timeout': self.config.lookup_timeout,
            'connect_timeout': self.config.connect_timeout,
            'deadline_grace': self.config.deadline_grace,
            'port': self.config.port,
            'warning_days': self.config.warning_days,
            'critical_days': self.config.critical_days,
            'aggregation_policy': self.config.aggregation_policy.value,
            'max_parallel_handshakes': self.config.max_parallel_handshakes,
            'sns_topic_arn': os.getenv('SNS_TOPIC_ARN', ''),
            'log_level': os.getenv('LOG_LEVEL', 'INFO')
        }

        self.logger_service.log_configuration_info(config)

    @property
    def status(self) -> ServiceStatus:
        return self.probe.status

    def check_host(self, host: str) -> CheckResult:
        """
        检查单个主机并在需要时发送告警

        Args:
            host: 主机名

        Returns:
            CheckResult: 检查结果

        Raises:
            ResolutionError: 主机名解析失败
        """
        self.logger_service.log_check_start(host)

        try:
            result = self.probe.check(host)
        except ResolutionError as e:
            self.logger_service.log_error(host, e)
            raise

        status = self.expiry_calculator.classify(result)
        self.logger_service.log_check_result(result, status)
        self.logger_service.logger.info(self.expiry_calculator.get_expiry_summary(result))

        if self.notification_service.enabled and self.expiry_calculator.needs_alert(status):
            sent = self.notification_service.send_expiry_alert(result, status)
            self.logger_service.log_notification_sent("SNS", host, sent)

        return result


_service: Optional[SSLValidityService] = None


def get_service() -> SSLValidityService:
    """获取（必要时创建）在多次调用间复用的服务实例"""
    global _service
    if _service is None:
        _service = SSLValidityService()
    return _service


def _text_response(status_code: int, body: str) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'text/plain; charset=utf-8',
            'Access-Control-Allow-Origin': '*'
        },
        'body': body
    }


def _request_path(event: Dict[str, Any]) -> str:
    """从API Gateway事件（REST或HTTP API）中取出请求路径"""
    path = event.get('rawPath') or event.get('path') or '/'
    return path.rstrip('/') or '/'


def _request_host(event: Dict[str, Any], path: str) -> str:
    path_parameters = event.get('pathParameters') or {}
    if path_parameters.get('host'):
        return unquote(path_parameters['host'])
    return unquote(path[len('/days/'):])


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    路由:
        /              版本信息
        /service       服务运行状态
        /days/{host}   证书剩余整天数（纯文本）

    Args:
        event: API Gateway代理事件
        context: Lambda运行时上下文

    Returns:
        dict: API Gateway代理响应
    """
    path = _request_path(event)

    if path == '/':
        return _text_response(200, VERSION)

    try:
        service = get_service()

        if path == '/service':
            if service.status == ServiceStatus.RUNNING:
                return _text_response(200, "Running\n")
            return _text_response(503, f"{service.status.value.capitalize()}\n")

        if path.startswith('/days/'):
            host = _request_host(event, path)
            if not host or '/' in host:
                return _text_response(400, "invalid host\n")

            try:
                result = service.check_host(host)
            except ResolutionError as e:
                return _text_response(502, f"resolution failed: {e.cause}\n")

            if not result.is_known:
                return _text_response(503, "unknown\n")

            return _text_response(200, f"{result.days_remaining}\n")

        return _text_response(404, "not found\n")

    except Exception as e:
        # 处理未捕获的异常
        LoggerService().logger.error(
            f"Lambda函数执行时发生严重错误: {type(e).__name__}: {str(e)} "
            f"({datetime.now(timezone.utc).isoformat()})"
        )
        return _text_response(500, "internal error\n")
