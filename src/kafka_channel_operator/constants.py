"""Constants for the KafkaChannel Operator."""

# API Group
API_GROUP = "messaging.knative.dev"
API_VERSION = "v1beta1"
API_GROUP_VERSION = f"{API_GROUP}/{API_VERSION}"

# Resource Kinds
KIND_KAFKA_CHANNEL = "KafkaChannel"
KIND_SERVICE = "Service"
KIND_DEPLOYMENT = "Deployment"

# Component identity
CONTROLLER_COMPONENT_NAME = "kafkachannel-controller"
DISPATCHER_COMPONENT_NAME = "kafkachannel-dispatcher"
FIELD_MANAGER = "kafka-channel-operator"

# Labels
LABEL_MESSAGING_ROLE = "messaging.knative.dev/role"
MESSAGING_ROLE = "kafka-channel"
LABEL_KAFKA_SECRET = "eventing-kafka.knative.dev/kafka-secret"
LABEL_CHANNEL_NAME = "kafkachannel-name"
LABEL_CHANNEL_NAMESPACE = "kafkachannel-namespace"
LABEL_APP = "app"
LABEL_MANAGED_BY = "app.kubernetes.io/managed-by"

# Finalizers
FINALIZER = f"kafkachannels.{API_GROUP}"

# Channel service
CHANNEL_SERVICE_SUFFIX = "-kn-channel"
SERVICE_DNS_SUFFIX = "svc.cluster.local"
PORT_NAME = "http"
PORT_NUMBER = 80
CONTAINER_PORT_NUMBER = 8080
METRICS_PORT_NAME = "metrics"
METRICS_PORT_NUMBER = 8081

# Dispatcher
DISPATCHER_SUFFIX = "-dispatcher"

# Service, Deployment and label values are DNS-1123 labels
DNS_LABEL_MAX_LENGTH = 63
NAME_HASH_LENGTH = 8

# Kafka secret keys
KAFKA_SECRET_KEY_BROKERS = "brokers"
KAFKA_SECRET_KEY_USERNAME = "username"
KAFKA_SECRET_KEY_PASSWORD = "password"
KAFKA_SECRET_KEY_PROTOCOL = "protocol"

# Kafka topic config keys
TOPIC_CONFIG_RETENTION_MS = "retention.ms"

# Config map
DEFAULT_CONFIG_MAP_NAME = "config-kafka"
CONFIG_MAP_SARAMA_KEY = "sarama"
CONFIG_MAP_EVENTING_KAFKA_KEY = "eventing-kafka"

# Condition Types
COND_READY = "Ready"
COND_ADDRESSABLE = "Addressable"
COND_CONFIG_READY = "ConfigReady"
COND_TOPIC_READY = "TopicReady"
COND_CHANNEL_SERVICE_READY = "ChannelServiceReady"
COND_DISPATCHER_SERVICE_READY = "DispatcherServiceReady"
COND_DISPATCHER_DEPLOYMENT_READY = "DispatcherDeploymentReady"

# Condition Status
STATUS_TRUE = "True"
STATUS_FALSE = "False"
STATUS_UNKNOWN = "Unknown"

# Event Reasons
EVENT_REASON_RECONCILE_STARTED = "ReconcileStarted"
EVENT_REASON_RECONCILE_FAILED = "ReconcileFailed"
EVENT_REASON_CHANNEL_RECONCILED = "KafkaChannelReconciled"
EVENT_REASON_CHANNEL_FINALIZED = "KafkaChannelFinalized"
EVENT_REASON_FINALIZE_FAILED = "KafkaChannelFinalizationFailed"
EVENT_REASON_KAFKA_SECRET_RECONCILED = "KafkaSecretReconciled"
EVENT_REASON_TOPIC_CREATED = "KafkaTopicCreated"
EVENT_REASON_TOPIC_DELETED = "KafkaTopicDeleted"

# Coarse error messages
RECONCILIATION_FAILED_ERROR = "reconciliation failed"
FINALIZATION_FAILED_ERROR = "finalization failed"
