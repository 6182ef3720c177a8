"""
SNS通知服务测试
"""
import os
import pytest
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone, timedelta

import boto3
from botocore.exceptions import ClientError
from moto import mock_aws

from ssl_validity_probe.services.sns_notification import SNSNotificationService
from ssl_validity_probe.models import CertificateObservation, CheckOutcome, CheckResult, ExpiryStatus


def expiring_result(days: int = 10) -> CheckResult:
    remaining = timedelta(days=days, hours=3)
    return CheckResult(
        host="example.com",
        outcome=CheckOutcome.VALID,
        remaining_validity=remaining,
        addresses=["192.0.2.10"],
        observations=[CertificateObservation(
            address="192.0.2.10",
            common_name="example.com",
            signature=b"sig",
            not_after=datetime.now(timezone.utc) + remaining,
            remaining_validity=remaining
        )]
    )


def unreachable_result() -> CheckResult:
    return CheckResult(
        host="example.com",
        outcome=CheckOutcome.UNREACHABLE,
        addresses=["192.0.2.10"],
        skipped_addresses=["192.0.2.10"],
        errors=[{
            'address': "192.0.2.10",
            'error_type': "TimeoutError",
            'error_message': "timed out"
        }]
    )


class TestSNSNotificationService:
    """SNS通知服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.topic_arn = "arn:aws:sns:eu-west-1:123456789012:ssl-alerts"

    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_init_with_topic_arn(self, mock_boto3):
        """测试使用指定topic_arn初始化，区域从ARN中提取"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client

        service = SNSNotificationService(topic_arn=self.topic_arn)

        assert service.topic_arn == self.topic_arn
        assert service.sns_client == mock_client
        assert service.enabled is True
        mock_boto3.client.assert_called_once_with('sns', region_name='eu-west-1')

    @patch.dict(os.environ, {}, clear=True)
    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_init_without_topic(self, mock_boto3):
        """测试未配置主题时不创建客户端"""
        service = SNSNotificationService()

        assert service.enabled is False
        mock_boto3.client.assert_not_called()
        assert service.send_expiry_alert(expiring_result(), ExpiryStatus.CRITICAL) is False

    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_ok_status_not_sent(self, mock_boto3):
        """测试OK级别不发送通知"""
        service = SNSNotificationService(topic_arn=self.topic_arn)

        assert service.send_expiry_alert(expiring_result(90), ExpiryStatus.OK) is True
        mock_boto3.client.return_value.publish.assert_not_called()

    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_send_critical_alert(self, mock_boto3):
        """测试发送严重级别告警"""
        mock_client = mock_boto3.client.return_value
        mock_client.publish.return_value = {'MessageId': 'msg-1'}

        service = SNSNotificationService(topic_arn=self.topic_arn)
        assert service.send_expiry_alert(expiring_result(10), ExpiryStatus.CRITICAL) is True

        kwargs = mock_client.publish.call_args.kwargs
        assert kwargs['TopicArn'] == self.topic_arn
        assert kwargs['Subject'] == "🚨 SSL证书警报: example.com 剩余 10 天"
        assert "剩余有效期: 10d 3h" in kwargs['Message']

    @patch('ssl_validity_probe.services.sns_notification.time.sleep')
    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_retry_on_throttling(self, mock_boto3, mock_sleep):
        """测试限流错误重试"""
        mock_client = mock_boto3.client.return_value
        throttled = ClientError({'Error': {'Code': 'Throttling', 'Message': 'Rate exceeded'}}, 'Publish')
        mock_client.publish.side_effect = [throttled, {'MessageId': 'msg-2'}]

        service = SNSNotificationService(topic_arn=self.topic_arn)

        assert service.send_expiry_alert(expiring_result(), ExpiryStatus.WARNING) is True
        assert mock_client.publish.call_count == 2
        mock_sleep.assert_called_once_with(1)

    @patch('ssl_validity_probe.services.sns_notification.time.sleep')
    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_no_retry_on_auth_error(self, mock_boto3, mock_sleep):
        """测试不可重试的错误直接失败"""
        mock_client = mock_boto3.client.return_value
        mock_client.publish.side_effect = ClientError(
            {'Error': {'Code': 'AuthorizationError', 'Message': 'denied'}}, 'Publish'
        )

        service = SNSNotificationService(topic_arn=self.topic_arn)

        assert service.send_expiry_alert(expiring_result(), ExpiryStatus.WARNING) is False
        assert mock_client.publish.call_count == 1
        mock_sleep.assert_not_called()

    def test_format_warning_subject(self):
        """测试警告级别的主题"""
        with patch('ssl_validity_probe.services.sns_notification.boto3'):
            service = SNSNotificationService(topic_arn=self.topic_arn)

        assert service._format_subject(expiring_result(20), ExpiryStatus.WARNING) == "⚠️ SSL证书提醒: example.com 剩余 20 天"

    def test_format_unknown_content(self):
        """测试无法检查时的通知内容"""
        with patch('ssl_validity_probe.services.sns_notification.boto3'):
            service = SNSNotificationService(topic_arn=self.topic_arn)

        content = service.format_notification_content(unreachable_result(), ExpiryStatus.UNKNOWN)

        assert "级别: UNKNOWN" in content
        assert "无法获取任何证书" in content
        assert "192.0.2.10 - TimeoutError: timed out" in content
        assert service._format_subject(unreachable_result(), ExpiryStatus.UNKNOWN) == "❌ SSL证书检查失败: example.com"

    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_long_host_truncated_in_subject(self, mock_boto3):
        """测试超长主机名在主题中截断，正文保留完整主机名"""
        mock_client = MagicMock()
        mock_boto3.client.return_value = mock_client
        mock_client.publish.return_value = {'MessageId': 'msg-1'}
        service = SNSNotificationService(topic_arn=self.topic_arn)

        result = expiring_result(3)
        result.host = "a" * 60 + "." + "b" * 60 + ".example.com"

        for status in (ExpiryStatus.CRITICAL, ExpiryStatus.WARNING, ExpiryStatus.UNKNOWN):
            subject = service._format_subject(result, status)
            assert len(subject) < 100
            assert "…" in subject

        assert service.send_expiry_alert(result, ExpiryStatus.CRITICAL) is True
        kwargs = mock_client.publish.call_args.kwargs
        assert len(kwargs['Subject']) < 100
        assert kwargs['Subject'].endswith("剩余 3 天")
        assert f"主机: {result.host}" in kwargs['Message']

    @patch('ssl_validity_probe.services.sns_notification.boto3')
    def test_get_configuration_status(self, mock_boto3):
        """测试配置状态"""
        service = SNSNotificationService(topic_arn=self.topic_arn)

        status = service.get_configuration_status()

        assert status['configuration_valid'] is True
        assert status['region_name'] == 'eu-west-1'


class TestSNSNotificationServiceWithMoto:
    """使用moto模拟AWS的SNS测试"""

    @mock_aws
    def test_publish_to_real_topic(self):
        """测试向模拟的SNS主题发布告警"""
        sns = boto3.client('sns', region_name='us-east-1')
        topic_arn = sns.create_topic(Name='ssl-alerts')['TopicArn']

        service = SNSNotificationService(topic_arn=topic_arn)

        assert service.test_connection() is True
        assert service.send_expiry_alert(expiring_result(5), ExpiryStatus.CRITICAL) is True

    @mock_aws
    def test_connection_to_missing_topic(self):
        """测试主题不存在时连接测试失败"""
        service = SNSNotificationService(topic_arn='arn:aws:sns:us-east-1:123456789012:missing')

        assert service.test_connection() is False
