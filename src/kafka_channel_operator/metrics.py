"""Prometheus metrics for the KafkaChannel Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "kafka_channel_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "kafka_channel_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0],
)

finalize_total = Counter(
    "kafka_channel_operator_finalize_total",
    "Total number of finalizations",
    ["kind", "result"],
)

error_total = Counter(
    "kafka_channel_operator_error_total",
    "Total number of errors by type",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "kafka_channel_operator_resource_status_total",
    "Resource readiness observed at the end of a reconciliation",
    ["kind", "status"],
)

# Kafka admin session metrics
admin_sessions_total = Counter(
    "kafka_channel_operator_admin_sessions_total",
    "Kafka admin session lifecycle transitions",
    ["result"],
)

admin_lock_wait_seconds = Histogram(
    "kafka_channel_operator_admin_lock_wait_seconds",
    "Time spent waiting for the admin session lock",
    buckets=[0.001, 0.01, 0.1, 0.5, 1.0, 5.0, 30.0],
)

# Kafka topic metrics
topic_operations_total = Counter(
    "kafka_channel_operator_topic_operations_total",
    "Total number of Kafka topic operations",
    ["operation", "result"],
)

# Child resource metrics
child_resource_operations_total = Counter(
    "kafka_channel_operator_child_resource_operations_total",
    "Total number of operations on owned Kubernetes resources",
    ["resource_kind", "operation", "result"],
)

# Configuration metrics
config_updates_total = Counter(
    "kafka_channel_operator_config_updates_total",
    "Kafka configuration ConfigMap updates",
    ["result"],
)

# API call metrics
api_call_total = Counter(
    "kafka_channel_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "kafka_channel_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "kafka_channel_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
