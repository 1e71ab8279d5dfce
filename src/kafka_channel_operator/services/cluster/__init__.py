"""Kubernetes object access for KafkaChannel dependents."""

from .store import ClusterStore, load_kube_config, needs_update

__all__ = ["ClusterStore", "load_kube_config", "needs_update"]
