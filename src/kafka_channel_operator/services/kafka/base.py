"""Base Kafka admin session interface."""

from __future__ import annotations

from typing import Protocol

from ...builders.topic import TopicConfig


class AdminSession(Protocol):
    """Protocol defining the Kafka administrative operations used per attempt."""

    def close(self) -> None:
        """Close the underlying admin connection."""
        ...

    def resolve_secret_reference(self, topic_name: str) -> str | None:
        """Return the name of the Kafka secret bound to a topic, if any."""
        ...

    def ensure_topic(self, name: str, config: TopicConfig) -> bool:
        """Create the topic if absent.

        Returns:
            True if the topic was created, False if it already existed
        """
        ...

    def delete_topic(self, name: str) -> bool:
        """Delete the topic.

        Returns:
            True if the topic was deleted, False if it did not exist
        """
        ...
