"""Kopf operator that converges Knative KafkaChannels onto Kafka topics."""

__version__ = "0.1.0"
