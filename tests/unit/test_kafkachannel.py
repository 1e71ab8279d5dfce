"""Tests for the KafkaChannel reconciliation and finalization orchestrators."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from unittest.mock import MagicMock, Mock, call, patch

import kopf
import pytest
from urllib3.exceptions import MaxRetryError

from kafka_channel_operator.config import AdminConfig, ConfigStore, Settings
from kafka_channel_operator.constants import COND_CHANNEL_SERVICE_READY, COND_CONFIG_READY, COND_READY, FINALIZER
from kafka_channel_operator.handlers import kafkachannel
from kafka_channel_operator.handlers.children import ChannelReconciler
from kafka_channel_operator.handlers.kafkachannel import KafkaChannelHandler
from kafka_channel_operator.models import KafkaChannel
from kafka_channel_operator.services.cluster import ClusterStore
from kafka_channel_operator.session import AdminSessionManager
from kafka_channel_operator.utils.conditions import CHANNEL_CONDITIONS
from kafka_channel_operator.utils.errors import (
    AdminSessionUnavailableError,
    FinalizationFailedError,
    ReconciliationFailedError,
    SubResourceConvergenceError,
    TopicError,
)


class FakeSessions:
    """Stands in for AdminSessionManager and records session scopes."""

    def __init__(self, admin=None):
        self.admin = admin if admin is not None else Mock(name="admin")
        self.opened = 0
        self.released = 0

    @contextmanager
    def session(self):
        self.opened += 1
        try:
            yield self.admin
        finally:
            self.released += 1


def _channel() -> KafkaChannel:
    return KafkaChannel(namespace="shop", name="orders", uid="uid-1", generation=3)


def _handler(sessions=None, secret="kafka"):
    topics = Mock()
    topics.ensure_topic.return_value = secret
    channels = Mock()
    dispatchers = Mock()
    handler = KafkaChannelHandler(
        Settings(retry_delay_seconds=5.0),
        sessions or FakeSessions(),
        Mock(name="store"),
        topics=topics,
        channels=channels,
        dispatchers=dispatchers,
    )
    return handler, topics, channels, dispatchers


@pytest.fixture(autouse=True)
def mock_events():
    with patch("kafka_channel_operator.handlers.kafkachannel.emit_channel_reconciled") as reconciled, \
            patch("kafka_channel_operator.handlers.kafkachannel.emit_channel_finalized") as finalized:
        yield {"reconciled": reconciled, "finalized": finalized}


class TestReconcile:
    """Test cases for KafkaChannelHandler.reconcile."""

    def test_success(self, mock_events):
        handler, topics, channels, dispatchers = _handler()
        channel = _channel()

        handler.reconcile(channel)

        topics.ensure_topic.assert_called_once_with(handler.sessions.admin, channel)
        channels.reconcile.assert_called_once_with(channel, handler.store)
        dispatchers.reconcile.assert_called_once_with(channel, handler.store, "kafka")
        assert channel.status.observed_generation == 3
        assert channel.status.conditions.status_of(COND_CONFIG_READY) == "True"
        mock_events["reconciled"].assert_called_once_with(channel.body, "shop", "orders")

    def test_session_held_for_whole_attempt(self):
        sessions = FakeSessions()
        handler, _, channels, _ = _handler(sessions)
        released_during_children = []
        channels.reconcile.side_effect = lambda channel, store: released_during_children.append(sessions.released)

        handler.reconcile(_channel())

        assert released_during_children == [0]
        assert sessions.opened == 1
        assert sessions.released == 1

    def test_conditions_reset_each_attempt(self):
        handler, _, _, _ = _handler()
        channel = _channel()
        for condition_type in CHANNEL_CONDITIONS:
            channel.status.conditions.mark_true(condition_type)

        handler.reconcile(channel)

        # The mocked children set nothing, so only ConfigReady moved off Unknown
        assert channel.status.conditions.status_of(COND_READY) == "Unknown"

    def test_missing_secret_gates_children(self, mock_events):
        handler, _, channels, dispatchers = _handler(secret=None)
        channel = _channel()

        with pytest.raises(ReconciliationFailedError, match="reconciliation failed"):
            handler.reconcile(channel)

        channels.reconcile.assert_not_called()
        dispatchers.reconcile.assert_not_called()
        config_ready = channel.status.conditions.get(COND_CONFIG_READY)
        assert config_ready["status"] == "False"
        assert config_ready["reason"] == "KafkaSecretReconciled"
        assert config_ready["message"] == "No Kafka Secret For KafkaChannel"
        assert channel.status.observed_generation is None
        mock_events["reconciled"].assert_not_called()

    def test_topic_failure(self):
        handler, topics, channels, _ = _handler()
        topics.ensure_topic.side_effect = TopicError("broker down")

        with pytest.raises(ReconciliationFailedError) as exc_info:
            handler.reconcile(_channel())

        assert isinstance(exc_info.value.__cause__, TopicError)
        channels.reconcile.assert_not_called()

    def test_no_admin_session(self):
        handler, topics, _, _ = _handler()
        topics.ensure_topic.side_effect = AdminSessionUnavailableError("no session")

        with pytest.raises(ReconciliationFailedError):
            handler.reconcile(_channel())
        assert handler.sessions.released == 1

    def test_children_failures_aggregated(self):
        handler, _, channels, dispatchers = _handler()
        channels.reconcile.side_effect = SubResourceConvergenceError("Service", "shop", "orders-kn-channel", "x")
        channel = _channel()

        with pytest.raises(ReconciliationFailedError):
            handler.reconcile(channel)

        # The dispatcher is still attempted after the channel Service failed
        dispatchers.reconcile.assert_called_once()
        assert channel.status.observed_generation is None

    def test_dispatcher_failure_alone_fails_attempt(self):
        handler, _, channels, dispatchers = _handler()
        dispatchers.reconcile.side_effect = SubResourceConvergenceError("Deployment", "ke", "d", "x")

        with pytest.raises(ReconciliationFailedError):
            handler.reconcile(_channel())
        channels.reconcile.assert_called_once()

    def test_unreachable_api_server_still_attempts_dispatcher(self):
        handler, _, _, dispatchers = _handler()
        core_api = MagicMock()
        core_api.read_namespaced_service.side_effect = MaxRetryError(None, "/api/v1/namespaces/shop/services")
        handler.store = ClusterStore(core_api=core_api, apps_api=MagicMock())
        handler.channels = ChannelReconciler(handler.settings)
        channel = _channel()

        with patch("kafka_channel_operator.utils.rate_limit._throttle"), \
                pytest.raises(ReconciliationFailedError) as exc_info:
            handler.reconcile(channel)

        dispatchers.reconcile.assert_called_once_with(channel, handler.store, "kafka")
        assert isinstance(exc_info.value.__cause__, SubResourceConvergenceError)
        assert channel.status.conditions.status_of(COND_CHANNEL_SERVICE_READY) == "False"

    def test_unexpected_child_error_is_aggregated(self):
        handler, _, channels, dispatchers = _handler()
        channels.reconcile.side_effect = RuntimeError("unexpected")

        with pytest.raises(ReconciliationFailedError) as exc_info:
            handler.reconcile(_channel())

        dispatchers.reconcile.assert_called_once()
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert handler.sessions.released == 1

    def test_unexpected_topic_error_is_coarse(self):
        handler, topics, channels, _ = _handler()
        topics.ensure_topic.side_effect = ConnectionResetError("connection reset by peer")

        with pytest.raises(ReconciliationFailedError):
            handler.reconcile(_channel())
        channels.reconcile.assert_not_called()


class TestConcurrentReconcile:
    """Test cases for concurrent attempts sharing one session manager."""

    def test_one_live_session_across_channels(self):
        state = {"live": 0, "max_live": 0, "seen_live": []}
        state_lock = threading.Lock()

        def factory(config, component_id):
            with state_lock:
                state["live"] += 1
                state["max_live"] = max(state["max_live"], state["live"])
            session = MagicMock()

            def close():
                with state_lock:
                    state["live"] -= 1

            session.close.side_effect = close
            return session

        def ensure_topic(admin, channel):
            with state_lock:
                state["seen_live"].append(state["live"])
            time.sleep(0.01)
            return "kafka"

        sessions = AdminSessionManager(factory, ConfigStore(initial=AdminConfig(brokers="b:9092")))
        handler, topics, channels, dispatchers = _handler(sessions)
        topics.ensure_topic.side_effect = ensure_topic
        channels_to_reconcile = [
            KafkaChannel(namespace=f"ns-{index}", name="orders", uid=f"uid-{index}", generation=1)
            for index in range(6)
        ]

        threads = [threading.Thread(target=handler.reconcile, args=(channel,)) for channel in channels_to_reconcile]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert state["max_live"] == 1
        assert state["live"] == 0
        assert state["seen_live"] == [1] * 6
        assert dispatchers.reconcile.call_count == 6
        assert all(channel.status.observed_generation == 1 for channel in channels_to_reconcile)
        assert not sessions.lock.locked()


class TestFinalize:
    """Test cases for KafkaChannelHandler.finalize."""

    def test_dispatcher_before_topic(self, mock_events):
        handler, topics, _, dispatchers = _handler()
        order = Mock()
        order.attach_mock(dispatchers.finalize, "dispatchers_finalize")
        order.attach_mock(topics.delete_topic, "delete_topic")
        channel = _channel()

        handler.finalize(channel)

        assert order.mock_calls == [
            call.dispatchers_finalize(channel, handler.store),
            call.delete_topic(handler.sessions.admin, channel),
        ]
        mock_events["finalized"].assert_called_once_with(channel.body, "shop", "orders")

    def test_dispatcher_failure_skips_topic(self, mock_events):
        handler, topics, _, dispatchers = _handler()
        dispatchers.finalize.side_effect = SubResourceConvergenceError("Deployment", "ke", "d", "x")

        with pytest.raises(FinalizationFailedError, match="finalization failed"):
            handler.finalize(_channel())

        topics.delete_topic.assert_not_called()
        mock_events["finalized"].assert_not_called()
        assert handler.sessions.released == 1

    def test_topic_failure(self):
        handler, topics, _, _ = _handler()
        topics.delete_topic.side_effect = TopicError("broker down")

        with pytest.raises(FinalizationFailedError):
            handler.finalize(_channel())

    def test_unexpected_dispatcher_error_skips_topic(self):
        handler, topics, _, dispatchers = _handler()
        dispatchers.finalize.side_effect = RuntimeError("unexpected")

        with pytest.raises(FinalizationFailedError):
            handler.finalize(_channel())
        topics.delete_topic.assert_not_called()

    def test_unexpected_topic_error_is_coarse(self):
        handler, topics, _, _ = _handler()
        topics.delete_topic.side_effect = ConnectionRefusedError("connection refused")

        with pytest.raises(FinalizationFailedError):
            handler.finalize(_channel())

    def test_repeatable(self, mock_events):
        handler, topics, _, dispatchers = _handler()
        channel = _channel()

        handler.finalize(channel)
        handler.finalize(channel)

        assert dispatchers.finalize.call_count == 2
        assert topics.delete_topic.call_count == 2
        assert handler.sessions.released == 2


class TestKopfHandlers:
    """Test cases for the kopf handler functions."""

    @pytest.fixture
    def handler(self):
        handler = MagicMock()
        handler.settings = Settings(retry_delay_seconds=7.0)
        handler.run_with_metrics.side_effect = lambda meta, operation, fn: fn()
        with patch.object(kafkachannel, "get_handler", return_value=handler), \
                patch("kafka_channel_operator.handlers.kafkachannel.emit_reconcile_started"), \
                patch("kafka_channel_operator.handlers.kafkachannel.emit_reconcile_failed"), \
                patch("kafka_channel_operator.handlers.kafkachannel.emit_finalize_failed"):
            yield handler

    def _kwargs(self) -> dict:
        meta = {"name": "orders", "namespace": "shop", "uid": "uid-1", "generation": 3, "finalizers": [FINALIZER]}
        return {
            "spec": {"numPartitions": 2},
            "meta": meta,
            "status": {},
            "body": {"metadata": meta},
            "patch": kopf.Patch(),
        }

    def test_reconcile_publishes_status(self, handler):
        kwargs = self._kwargs()

        kafkachannel.handle_kafkachannel(**kwargs)

        handler.ensure_finalizer.assert_called_once_with(kwargs["meta"], kwargs["patch"])
        channel = handler.reconcile.call_args[0][0]
        assert channel.name == "orders"
        assert channel.spec == {"numPartitions": 2}
        handler.update_resource_status.assert_called_once_with(kwargs["patch"], channel)

    def test_reconcile_failure_becomes_temporary_error(self, handler):
        handler.reconcile.side_effect = ReconciliationFailedError()
        kwargs = self._kwargs()

        with pytest.raises(kopf.TemporaryError) as exc_info:
            kafkachannel.handle_kafkachannel(**kwargs)

        assert exc_info.value.delay == 7.0
        # Status is still published so failed conditions are visible
        handler.update_resource_status.assert_called_once()

    def test_delete_removes_finalizer(self, handler):
        kwargs = self._kwargs()

        kafkachannel.handle_kafkachannel_delete(**kwargs)

        handler.finalize.assert_called_once()
        handler.remove_finalizer.assert_called_once_with(kwargs["meta"], kwargs["patch"])

    def test_delete_failure_keeps_finalizer(self, handler):
        handler.finalize.side_effect = FinalizationFailedError()
        kwargs = self._kwargs()

        with pytest.raises(kopf.TemporaryError):
            kafkachannel.handle_kafkachannel_delete(**kwargs)

        handler.remove_finalizer.assert_not_called()
