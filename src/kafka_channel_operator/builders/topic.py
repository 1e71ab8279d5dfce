"""Builder for Kafka topic configurations."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..config import Settings
from ..constants import TOPIC_CONFIG_RETENTION_MS

# ISO-8601 durations as used by KafkaChannel.spec.retentionDuration, e.g. "PT168H" or "P7D"
_DURATION_RE = re.compile(
    r"^P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+(?:\.\d+)?)S)?)?$"
)


@dataclass(frozen=True)
class TopicConfig:
    num_partitions: int
    replication_factor: int
    configs: dict[str, str] = field(default_factory=dict)


def parse_retention_duration(duration: str) -> int:
    """Convert an ISO-8601 duration to milliseconds.

    Raises:
        ValueError: If the duration is malformed or zero
    """
    match = _DURATION_RE.match(duration.strip())
    if not match or duration.strip() in ("P", "PT"):
        raise ValueError(f"Invalid retention duration: {duration!r}")

    parts = {key: float(value) for key, value in match.groupdict().items() if value}
    seconds = (
        parts.get("weeks", 0) * 7 * 86400
        + parts.get("days", 0) * 86400
        + parts.get("hours", 0) * 3600
        + parts.get("minutes", 0) * 60
        + parts.get("seconds", 0)
    )
    if seconds <= 0:
        raise ValueError(f"Retention duration must be positive: {duration!r}")
    return int(seconds * 1000)


def create_topic_config_from_spec(spec: dict, settings: Settings) -> TopicConfig:
    """Create a topic configuration from a KafkaChannel spec.

    Args:
        spec: KafkaChannel spec
        settings: Operator settings providing defaults

    Returns:
        TopicConfig for the admin client

    Raises:
        ValueError: If the spec holds invalid values
    """
    num_partitions = int(spec.get("numPartitions") or settings.default_num_partitions)
    replication_factor = int(spec.get("replicationFactor") or settings.default_replication_factor)
    if num_partitions < 1:
        raise ValueError(f"numPartitions must be at least 1, got {num_partitions}")
    if replication_factor < 1:
        raise ValueError(f"replicationFactor must be at least 1, got {replication_factor}")

    retention = spec.get("retentionDuration")
    retention_ms = parse_retention_duration(retention) if retention else settings.default_retention_millis

    return TopicConfig(
        num_partitions=num_partitions,
        replication_factor=replication_factor,
        configs={TOPIC_CONFIG_RETENTION_MS: str(retention_ms)},
    )
