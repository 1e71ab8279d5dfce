"""Tests for Kafka secret utilities."""

from __future__ import annotations

import base64
from unittest.mock import Mock

from kafka_channel_operator.utils.secrets import decode_secret_data, find_kafka_secret, read_kafka_secret


def _secret(name: str, data: dict) -> Mock:
    secret = Mock()
    secret.metadata.name = name
    secret.data = data
    return secret


def _b64(value: str) -> str:
    return base64.b64encode(value.encode("utf-8")).decode("utf-8")


class TestDecodeSecretData:
    """Test cases for decode_secret_data function."""

    def test_decodes_base64_values(self):
        result = decode_secret_data({"brokers": _b64("kafka:9092"), "password": _b64("s3cr3t!")})
        assert result == {"brokers": "kafka:9092", "password": "s3cr3t!"}

    def test_bytes_values(self):
        """Test values that are already bytes."""
        assert decode_secret_data({"username": b"alice"}) == {"username": "alice"}

    def test_already_decoded_values(self):
        """Test values that are not valid base64 are kept as-is."""
        assert decode_secret_data({"brokers": "kafka:9092"}) == {"brokers": "kafka:9092"}

    def test_none(self):
        assert decode_secret_data(None) == {}


class TestFindKafkaSecret:
    """Test cases for find_kafka_secret function."""

    def test_lists_by_label(self):
        """Test the lookup is a label selector on the namespace."""
        mock_api = Mock()
        mock_api.list_namespaced_secret.return_value.items = [_secret("kafka", {})]

        result = find_kafka_secret(mock_api, "knative-eventing")

        assert result.metadata.name == "kafka"
        mock_api.list_namespaced_secret.assert_called_once_with(
            namespace="knative-eventing",
            label_selector="eventing-kafka.knative.dev/kafka-secret=true",
        )

    def test_no_secret(self):
        mock_api = Mock()
        mock_api.list_namespaced_secret.return_value.items = []

        assert find_kafka_secret(mock_api, "knative-eventing") is None

    def test_multiple_secrets_first_by_name(self):
        """Test that the first secret by name wins when several are labelled."""
        mock_api = Mock()
        mock_api.list_namespaced_secret.return_value.items = [_secret("kafka-b", {}), _secret("kafka-a", {})]

        assert find_kafka_secret(mock_api, "knative-eventing").metadata.name == "kafka-a"


class TestReadKafkaSecret:
    """Test cases for read_kafka_secret function."""

    def test_returns_name_and_decoded_data(self):
        mock_api = Mock()
        mock_api.list_namespaced_secret.return_value.items = [
            _secret("kafka", {"brokers": _b64("kafka:9092")}),
        ]

        name, data = read_kafka_secret(mock_api, "knative-eventing")

        assert name == "kafka"
        assert data == {"brokers": "kafka:9092"}

    def test_absent_secret(self):
        mock_api = Mock()
        mock_api.list_namespaced_secret.return_value.items = []

        assert read_kafka_secret(mock_api, "knative-eventing") == (None, {})
