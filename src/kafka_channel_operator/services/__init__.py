"""External services used by the operator: the Kafka admin API and the Kubernetes API."""
