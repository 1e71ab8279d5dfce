"""In-memory model of a KafkaChannel resource."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any

from .constants import (
    API_GROUP_VERSION,
    CHANNEL_SERVICE_SUFFIX,
    DISPATCHER_SUFFIX,
    DNS_LABEL_MAX_LENGTH,
    KIND_KAFKA_CHANNEL,
    NAME_HASH_LENGTH,
    SERVICE_DNS_SUFFIX,
)
from .utils.conditions import ConditionSet


def topic_name(namespace: str, name: str) -> str:
    """Derive the Kafka topic name for a channel.

    Namespaces are DNS labels and cannot contain dots, so splitting on the
    first dot recovers the identity and the mapping is injective.
    """
    return f"{namespace}.{name}"


def channel_service_name(channel_name: str) -> str:
    return f"{channel_name}{CHANNEL_SERVICE_SUFFIX}"


def dispatcher_name(namespace: str, name: str) -> str:
    """Name of the per-channel dispatcher Deployment/Service in the system namespace.

    Joining namespace and name with a dash is ambiguous ("a/b-c" and "a-b/c")
    and can exceed a DNS label, so the readable prefix is truncated and a hash
    of the channel identity keeps names of different channels apart.
    """
    digest = hashlib.sha256(f"{namespace}/{name}".encode()).hexdigest()[:NAME_HASH_LENGTH]
    budget = DNS_LABEL_MAX_LENGTH - len(DISPATCHER_SUFFIX) - NAME_HASH_LENGTH - 1
    prefix = f"{namespace}-{name}"[:budget].rstrip("-")
    return f"{prefix}-{digest}{DISPATCHER_SUFFIX}"


def service_dns_name(name: str, namespace: str) -> str:
    return f"{name}.{namespace}.{SERVICE_DNS_SUFFIX}"


@dataclass
class ChannelStatus:
    conditions: ConditionSet = field(default_factory=ConditionSet)
    observed_generation: int | None = None
    address: str | None = None

    def to_dict(self) -> dict[str, Any]:
        status: dict[str, Any] = {"conditions": self.conditions.to_list()}
        if self.observed_generation is not None:
            status["observedGeneration"] = self.observed_generation
        status["address"] = {"url": self.address} if self.address else None
        return status


@dataclass
class KafkaChannel:
    """A KafkaChannel as seen by a single reconciliation or finalization attempt."""

    namespace: str
    name: str
    uid: str = ""
    generation: int = 0
    spec: dict[str, Any] = field(default_factory=dict)
    status: ChannelStatus = field(default_factory=ChannelStatus)

    @classmethod
    def from_kopf(
        cls,
        spec: dict[str, Any],
        meta: dict[str, Any],
        status: dict[str, Any] | None = None,
    ) -> KafkaChannel:
        status = status or {}
        address = (status.get("address") or {}).get("url")
        return cls(
            namespace=meta.get("namespace", "default"),
            name=meta.get("name", "unknown"),
            uid=meta.get("uid", ""),
            generation=meta.get("generation", 0),
            spec=dict(spec or {}),
            status=ChannelStatus(
                conditions=ConditionSet.from_list(status.get("conditions")),
                observed_generation=status.get("observedGeneration"),
                address=address,
            ),
        )

    @property
    def topic_name(self) -> str:
        return topic_name(self.namespace, self.name)

    @property
    def service_name(self) -> str:
        return channel_service_name(self.name)

    @property
    def dispatcher_name(self) -> str:
        return dispatcher_name(self.namespace, self.name)

    @property
    def body(self) -> dict[str, Any]:
        """Minimal object body, enough for events and structured logs."""
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_KAFKA_CHANNEL,
            "metadata": self.meta,
        }

    @property
    def meta(self) -> dict[str, Any]:
        return {"name": self.name, "namespace": self.namespace, "uid": self.uid, "generation": self.generation}

    def owner_reference(self) -> dict[str, Any]:
        """Controller owner reference for same-namespace children."""
        return {
            "apiVersion": API_GROUP_VERSION,
            "kind": KIND_KAFKA_CHANNEL,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }
