"""
SNS通知服务
"""
import os
import time
import logging
from datetime import datetime, timezone
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import CheckResult, ExpiryStatus
from .duration_formatter import format_duration


MAX_SUBJECT_LENGTH = 99


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务实现"""

    def __init__(self, topic_arn: Optional[str] = None, region_name: Optional[str] = None):
        """
        初始化SNS通知服务

        Args:
            topic_arn: SNS主题ARN，如果为None则从环境变量读取
            region_name: AWS区域名称，如果为None则自动检测
        """
        self.topic_arn = topic_arn or os.getenv('SNS_TOPIC_ARN')

        if region_name:
            self.region_name = region_name
        elif self.topic_arn and 'arn:aws:sns:' in self.topic_arn:
            # 从SNS ARN中提取区域
            self.region_name = self.topic_arn.split(':')[3]
        else:
            self.region_name = os.getenv('AWS_REGION', 'us-east-1')

        self.logger = logging.getLogger(__name__)

        self.sns_client = None
        if self.topic_arn:
            try:
                self.sns_client = boto3.client('sns', region_name=self.region_name)
                self.logger.info(f"SNS客户端初始化成功，区域: {self.region_name}")
            except BotoCoreError as e:
                self.logger.error(f"初始化SNS客户端失败: {str(e)}")

    @property
    def enabled(self) -> bool:
        return self.sns_client is not None and bool(self.topic_arn)

    def send_expiry_alert(self, result: CheckResult, status: ExpiryStatus) -> bool:
        """
        发送证书有效期告警

        Args:
            result: 检查结果
            status: 告警级别

        Returns:
            bool: 发送是否成功（OK级别不发送，视为成功）
        """
        if status == ExpiryStatus.OK:
            self.logger.info(f"主机 {result.host} 证书状态正常，跳过通知发送")
            return True

        if not self._validate_configuration():
            return False

        subject = self._format_subject(result, status)
        message = self.format_notification_content(result, status)

        return self._publish_with_retry(subject, message)

    def _publish_with_retry(self, subject: str, message: str, max_retries: int = 3) -> bool:
        """
        带重试机制的SNS消息发布

        Args:
            subject: 消息主题
            message: 消息内容
            max_retries: 最大重试次数

        Returns:
            bool: 发送是否成功
        """
        for attempt in range(max_retries + 1):
            try:
                response = self.sns_client.publish(
                    TopicArn=self.topic_arn,
                    Subject=subject,
                    Message=message
                )

                message_id = response.get('MessageId')
                self.logger.info(f"SNS通知发送成功，MessageId: {message_id}")
                return True

            except ClientError as e:
                error_code = e.response['Error']['Code']
                error_message = e.response['Error']['Message']

                if self._is_retryable_error(error_code) and attempt < max_retries:
                    wait_time = 2 ** attempt  # 指数退避
                    self.logger.warning(
                        f"SNS发送失败 (尝试 {attempt + 1}/{max_retries + 1}) - {error_code}: {error_message}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
                return False

            except BotoCoreError as e:
                if attempt < max_retries:
                    wait_time = 2 ** attempt
                    self.logger.warning(
                        f"发送SNS通知时发生错误 (尝试 {attempt + 1}/{max_retries + 1}): {str(e)}，"
                        f"{wait_time}秒后重试"
                    )
                    time.sleep(wait_time)
                    continue

                self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
                return False

        return False

    def _is_retryable_error(self, error_code: str) -> bool:
        retryable_errors = {
            'Throttling',
            'ServiceUnavailable',
            'InternalError',
            'RequestTimeout'
        }
        return error_code in retryable_errors

    def format_notification_content(self, result: CheckResult, status: ExpiryStatus) -> str:
        """
        格式化通知内容

        Args:
            result: 检查结果
            status: 告警级别

        Returns:
            str: 格式化的通知内容
        """
        lines = [
            "SSL证书有效期告警",
            "=" * 30,
            f"检查时间: {datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')} UTC",
            f"主机: {result.host}",
            f"级别: {status.value.upper()}",
            ""
        ]

        if result.is_known:
            lines.append(f"剩余有效期: {format_duration(result.remaining_validity)}")
            lines.append(f"剩余天数: {result.days_remaining} 天")
            lines.append("")
            lines.append("证书:")
            for observation in result.observations:
                lines.append(f"• {observation.address} - {observation.common_name}")
                lines.append(f"  过期时间: {observation.not_after.strftime('%Y-%m-%d %H:%M:%S')}")
            lines.append("")
        else:
            lines.append("无法获取任何证书")
            lines.append(f"解析到的地址: {', '.join(result.addresses) or '无'}")
            for error in result.errors:
                lines.append(f"• {error['address']} - {error['error_type']}: {error['error_message']}")
            lines.append("")

        lines.extend([
            "建议操作:",
            "1. 续期即将过期的证书" if result.is_known else "1. 检查主机的网络连接和DNS配置",
            "2. 更新证书后重新部署相关服务",
            "",
            "此消息由SSL证书有效期探测服务自动发送。"
        ])

        return "\n".join(lines)

    def _format_subject(self, result: CheckResult, status: ExpiryStatus) -> str:
        if status == ExpiryStatus.CRITICAL:
            template = "🚨 SSL证书警报: {host} 剩余 " + f"{result.days_remaining} 天"
        elif status == ExpiryStatus.WARNING:
            template = "⚠️ SSL证书提醒: {host} 剩余 " + f"{result.days_remaining} 天"
        else:
            template = "❌ SSL证书检查失败: {host}"

        # SNS主题必须少于100个字符，超长主机名在主题中截断，正文保留完整主机名
        room = MAX_SUBJECT_LENGTH - len(template.format(host=""))
        host = result.host
        if len(host) > room:
            host = host[:room - 1] + "…"
        return template.format(host=host)

    def _validate_configuration(self) -> bool:
        """
        验证配置是否正确

        Returns:
            bool: 配置是否有效
        """
        if not self.topic_arn:
            self.logger.error("SNS主题ARN未配置")
            return False

        if not self.sns_client:
            self.logger.error("SNS客户端未初始化")
            return False

        return True

    def test_connection(self) -> bool:
        """
        测试SNS连接

        Returns:
            bool: 连接是否成功
        """
        if not self._validate_configuration():
            return False

        try:
            self.sns_client.get_topic_attributes(TopicArn=self.topic_arn)
            self.logger.info("SNS连接测试成功")
            return True

        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS连接测试失败 - {error_code}: {error_message}")
            return False

        except BotoCoreError as e:
            self.logger.error(f"SNS连接测试时发生错误: {str(e)}")
            return False

    def get_configuration_status(self) -> dict:
        """
        获取配置状态

        Returns:
            dict: 配置状态信息
        """
        return {
            'sns_client_initialized': self.sns_client is not None,
            'topic_arn_configured': bool(self.topic_arn),
            'topic_arn': self.topic_arn,
            'region_name': self.region_name,
            'configuration_valid': self._validate_configuration()
        }
