"""
配置验证服务
"""
import math
import os
import re
from typing import Dict, Any
import logging

from ..models import AggregationPolicy, ProbeConfig


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

        # 数值型环境变量: 名称 -> (ProbeConfig字段, 类型, 描述)
        self.numeric_env_vars = {
            'LOOKUP_TIMEOUT': ('lookup_timeout', float, 'DNS解析超时时间（秒）'),
            'CONNECT_TIMEOUT': ('connect_timeout', float, 'TLS连接超时时间（秒）'),
            'DEADLINE_GRACE': ('deadline_grace', float, '握手截止时间的额外宽限（秒）'),
            'TLS_PORT': ('port', int, 'TLS端口'),
            'WARNING_DAYS': ('warning_days', int, '警告阈值天数'),
            'CRITICAL_DAYS': ('critical_days', int, '严重阈值天数'),
            'MAX_PARALLEL_HANDSHAKES': ('max_parallel_handshakes', int, '并发握手数量'),
        }

    def validate_all_configurations(self) -> Dict[str, Any]:
        """
        验证所有配置

        Returns:
            Dict[str, Any]: 验证结果
        """
        validation_result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'configurations': {}
        }

        probe_validation = self.validate_probe_configuration()
        validation_result['configurations']['probe'] = probe_validation

        if not probe_validation['is_valid']:
            validation_result['is_valid'] = False
            validation_result['errors'].extend(probe_validation['errors'])

        validation_result['warnings'].extend(probe_validation['warnings'])

        # SNS是可选的，配置错误只作为警告
        sns_validation = self.validate_sns_configuration()
        validation_result['configurations']['sns'] = sns_validation
        validation_result['warnings'].extend(sns_validation['errors'])

        return validation_result

    def validate_probe_configuration(self) -> Dict[str, Any]:
        """
        验证探测相关的环境变量

        Returns:
            Dict[str, Any]: 探测配置验证结果，values中为解析后的ProbeConfig字段
        """
        result = {
            'is_valid': True,
            'errors': [],
            'warnings': [],
            'values': {}
        }

        for var_name, (field_name, cast, description) in self.numeric_env_vars.items():
            raw_value = os.getenv(var_name)
            if raw_value is None or not raw_value.strip():
                continue

            try:
                value = cast(raw_value.strip())
            except ValueError:
                result['is_valid'] = False
                result['errors'].append(f"环境变量格式无效: {var_name}={raw_value} ({description})")
                continue

            result['values'][field_name] = value

        self._check_ranges(result)

        policy = os.getenv('AGGREGATION_POLICY')
        if policy:
            try:
                result['values']['aggregation_policy'] = AggregationPolicy(policy.strip().lower())
            except ValueError:
                result['is_valid'] = False
                result['errors'].append(f"证书汇总策略无效: {policy}，应为 earliest 或 last")

        return result

    def _check_ranges(self, result: Dict[str, Any]):
        """检查数值范围"""
        values = result['values']
        defaults = ProbeConfig()

        for field_name in ('lookup_timeout', 'connect_timeout', 'deadline_grace'):
            if field_name in values and not math.isfinite(values[field_name]):
                result['is_valid'] = False
                result['errors'].append(f"{field_name} 必须为有限数值: {values.pop(field_name)}")

        for field_name in ('lookup_timeout', 'connect_timeout'):
            if field_name in values and values[field_name] <= 0:
                result['is_valid'] = False
                result['errors'].append(f"{field_name} 必须大于0: {values[field_name]}")

        if values.get('deadline_grace', 0) < 0:
            result['is_valid'] = False
            result['errors'].append(f"deadline_grace 不能为负数: {values['deadline_grace']}")

        port = values.get('port', defaults.port)
        if not 1 <= port <= 65535:
            result['is_valid'] = False
            result['errors'].append(f"端口无效: {port}，应在1到65535之间")

        if values.get('max_parallel_handshakes', 1) < 1:
            result['is_valid'] = False
            result['errors'].append("max_parallel_handshakes 至少为1")

        warning_days = values.get('warning_days', defaults.warning_days)
        critical_days = values.get('critical_days', defaults.critical_days)
        if critical_days > warning_days:
            result['is_valid'] = False
            result['errors'].append(
                f"严重阈值({critical_days}天)不能大于警告阈值({warning_days}天)"
            )
        elif critical_days == warning_days:
            result['warnings'].append(f"严重阈值与警告阈值相同: {critical_days}天，不会产生WARNING级别")

    def validate_sns_configuration(self) -> Dict[str, Any]:
        """
        验证SNS配置

        Returns:
            Dict[str, Any]: SNS配置验证结果
        """
        result = {
            'is_valid': True,
            'errors': [],
            'topic_arn': None,
            'arn_format_valid': False
        }

        topic_arn = os.getenv('SNS_TOPIC_ARN')

        if not topic_arn:
            result['is_valid'] = False
            result['errors'].append("SNS_TOPIC_ARN环境变量未设置，告警通知不可用")
            return result

        result['topic_arn'] = topic_arn

        arn_pattern = r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$'
        if re.match(arn_pattern, topic_arn):
            result['arn_format_valid'] = True
        else:
            result['is_valid'] = False
            result['errors'].append(f"SNS主题ARN格式无效: {topic_arn}")

        return result

    def build_probe_config(self) -> ProbeConfig:
        """
        从环境变量构建探测配置

        Returns:
            ProbeConfig: 不可变的探测配置

        Raises:
            ValueError: 配置无效
        """
        validation = self.validate_probe_configuration()

        for warning in validation['warnings']:
            self.logger.warning(warning)

        if not validation['is_valid']:
            for error in validation['errors']:
                self.logger.error(error)
            raise ValueError("配置验证失败: " + "; ".join(validation['errors']))

        return ProbeConfig(**validation['values'])

    def get_configuration_summary(self) -> str:
        """
        获取配置摘要

        Returns:
            str: 配置摘要文本
        """
        validation_result = self.validate_all_configurations()

        lines = [
            "配置验证摘要",
            "=" * 30
        ]

        if validation_result['is_valid']:
            lines.append("✅ 配置验证通过")
        else:
            lines.append("❌ 配置验证失败")

        if validation_result['errors']:
            lines.append("\n错误:")
            for error in validation_result['errors']:
                lines.append(f"  • {error}")

        if validation_result['warnings']:
            lines.append("\n警告:")
            for warning in validation_result['warnings']:
                lines.append(f"  • {warning}")

        probe_values = validation_result['configurations']['probe']['values']
        if probe_values:
            lines.append("\n配置详情:")
            for field_name, value in probe_values.items():
                lines.append(f"  {field_name}: {getattr(value, 'value', value)}")

        return "\n".join(lines)
