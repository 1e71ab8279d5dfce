"""Tests for condition utilities."""

from __future__ import annotations

import pytest

from kafka_channel_operator.constants import (
    COND_ADDRESSABLE,
    COND_CONFIG_READY,
    COND_READY,
    COND_TOPIC_READY,
)
from kafka_channel_operator.utils.conditions import CHANNEL_CONDITIONS, ConditionSet, update_condition


class TestUpdateCondition:
    """Test cases for update_condition function."""

    def test_add_new_condition(self):
        """Test adding a new condition."""
        conditions = []
        result = update_condition(conditions, "Ready", "True", "Ready", "Resource is ready")

        assert len(result) == 1
        assert result[0]["type"] == "Ready"
        assert result[0]["status"] == "True"
        assert result[0]["reason"] == "Ready"
        assert result[0]["message"] == "Resource is ready"
        assert "lastTransitionTime" in result[0]

    def test_update_existing_condition(self):
        """Test updating an existing condition."""
        conditions = [{"type": "Ready", "status": "False", "reason": "NotReady", "message": "Not ready"}]
        result = update_condition(conditions, "Ready", "True", "Ready", "Resource is ready")

        assert len(result) == 1
        assert result[0]["status"] == "True"
        assert result[0]["reason"] == "Ready"

    def test_preserve_transition_time_on_same_status(self):
        """Test that lastTransitionTime is preserved when status doesn't change."""
        old_time = "2024-01-01T00:00:00Z"
        conditions = [{
            "type": "Ready",
            "status": "True",
            "reason": "Ready",
            "message": "Old message",
            "lastTransitionTime": old_time,
        }]
        result = update_condition(conditions, "Ready", "True", "Ready", "New message")

        assert result[0]["lastTransitionTime"] == old_time
        assert result[0]["message"] == "New message"

    def test_observed_generation(self):
        """Test that observedGeneration is recorded when given."""
        result = update_condition([], "Ready", "True", "Ready", "", observed_generation=4)
        assert result[0]["observedGeneration"] == 4


class TestConditionSet:
    """Test cases for ConditionSet."""

    def test_new_set_is_all_unknown(self):
        """Test that a fresh set holds every condition plus Ready as Unknown."""
        conditions = ConditionSet()

        for condition_type in (*CHANNEL_CONDITIONS, COND_READY):
            assert conditions.status_of(condition_type) == "Unknown"
        assert not conditions.is_ready()

    def test_reset_returns_everything_to_unknown(self):
        """Test reset after conditions were marked."""
        conditions = ConditionSet()
        for condition_type in CHANNEL_CONDITIONS:
            conditions.mark_true(condition_type)
        assert conditions.is_ready()

        conditions.reset()

        assert all(cond["status"] == "Unknown" for cond in conditions.to_list())
        assert not conditions.is_ready()

    def test_ready_when_all_true(self):
        """Test that Ready follows the load-bearing conditions."""
        conditions = ConditionSet()
        for condition_type in CHANNEL_CONDITIONS:
            conditions.mark_true(condition_type)

        assert conditions.is_ready()
        assert conditions.status_of(COND_READY) == "True"

    def test_ready_false_carries_failing_reason(self):
        """Test that Ready reports the first False condition."""
        conditions = ConditionSet()
        conditions.mark_true(COND_TOPIC_READY)
        conditions.mark_false(COND_CONFIG_READY, "KafkaSecretReconciled", "No Kafka Secret For KafkaChannel")

        ready = conditions.get(COND_READY)
        assert ready["status"] == "False"
        assert ready["reason"] == "KafkaSecretReconciled"
        assert ready["message"] == "No Kafka Secret For KafkaChannel"
        assert not conditions.is_ready()

    def test_ready_unknown_while_partial(self):
        """Test that Ready stays Unknown when nothing failed yet."""
        conditions = ConditionSet()
        conditions.mark_true(COND_ADDRESSABLE)

        assert conditions.status_of(COND_READY) == "Unknown"

    def test_invalid_status_rejected(self):
        """Test that statuses outside the tri-state are rejected."""
        conditions = ConditionSet()
        with pytest.raises(ValueError):
            conditions.set(COND_TOPIC_READY, "Maybe")

    def test_mark_true_defaults_reason_to_type(self):
        """Test default reason for mark_true."""
        conditions = ConditionSet()
        conditions.mark_true(COND_TOPIC_READY)
        assert conditions.get(COND_TOPIC_READY)["reason"] == COND_TOPIC_READY

    def test_from_list_preserves_transition_time(self):
        """Test seeding from stored status keeps lastTransitionTime for unchanged status."""
        stored = [{
            "type": COND_TOPIC_READY,
            "status": "True",
            "reason": "TopicReady",
            "message": "",
            "lastTransitionTime": "2024-01-01T00:00:00Z",
        }]
        conditions = ConditionSet.from_list(stored)

        conditions.mark_true(COND_TOPIC_READY, "TopicReady")

        assert conditions.get(COND_TOPIC_READY)["lastTransitionTime"] == "2024-01-01T00:00:00Z"

    def test_from_list_skips_untyped_entries(self):
        """Test that malformed stored conditions are dropped."""
        conditions = ConditionSet.from_list([{"status": "True"}])
        assert all(cond.get("type") for cond in conditions.to_list())

    def test_to_list_returns_copies(self):
        """Test that callers cannot mutate the set through to_list."""
        conditions = ConditionSet()
        conditions.to_list()[0]["status"] = "True"
        assert all(cond["status"] == "Unknown" for cond in conditions.to_list())
