"""Utility functions for the KafkaChannel Operator."""

from .conditions import ConditionSet, update_condition
from .events import emit_event
from .rate_limit import call_with_rate_limit_retry, rate_limit_k8s, rate_limit_kafka
from .secrets import decode_secret_data, read_kafka_secret
