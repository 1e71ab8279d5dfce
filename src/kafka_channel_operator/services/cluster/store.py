"""Create-or-update access to the Kubernetes objects a KafkaChannel depends on."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

from kubernetes import client, config
from kubernetes.client.exceptions import ApiException
from urllib3.exceptions import HTTPError

from ... import metrics
from ...builders import ChildResource
from ...constants import FIELD_MANAGER, KIND_DEPLOYMENT, KIND_SERVICE
from ...utils.errors import SubResourceConvergenceError
from ...utils.rate_limit import call_with_rate_limit_retry

logger = logging.getLogger(__name__)

# Raised by the kubernetes client when the API server answers with an error or
# cannot be reached at all
CLUSTER_API_ERRORS = (ApiException, HTTPError, OSError)


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kube-config."""
    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()


def _to_dict(obj: Any) -> dict[str, Any]:
    if obj is None or isinstance(obj, dict):
        return obj or {}
    return client.ApiClient().sanitize_for_serialization(obj)


class ClusterStore:
    """Get/create/update/delete for the child kinds of a KafkaChannel."""

    def __init__(
        self,
        core_api: client.CoreV1Api | None = None,
        apps_api: client.AppsV1Api | None = None,
    ) -> None:
        self.core_api = core_api or client.CoreV1Api()
        self.apps_api = apps_api or client.AppsV1Api()

    def _operations(self, kind: str) -> dict[str, Callable[..., Any]]:
        if kind == KIND_SERVICE:
            return {
                "read": self.core_api.read_namespaced_service,
                "create": self.core_api.create_namespaced_service,
                "patch": self.core_api.patch_namespaced_service,
                "delete": self.core_api.delete_namespaced_service,
            }
        if kind == KIND_DEPLOYMENT:
            return {
                "read": self.apps_api.read_namespaced_deployment,
                "create": self.apps_api.create_namespaced_deployment,
                "patch": self.apps_api.patch_namespaced_deployment,
                "delete": self.apps_api.delete_namespaced_deployment,
            }
        raise ValueError(f"Unsupported child resource kind: {kind}")

    def _call(self, kind: str, operation: str, func: Callable[[], Any]) -> Any:
        start_time = time.time()
        try:
            result = call_with_rate_limit_retry(func)
            metrics.api_call_total.labels(api_type="k8s", operation=f"{operation}_{kind.lower()}", result="success").inc()
            return result
        except ApiException as e:
            result = "not_found" if e.status == 404 else "error"
            metrics.api_call_total.labels(api_type="k8s", operation=f"{operation}_{kind.lower()}", result=result).inc()
            raise
        except (HTTPError, OSError):
            metrics.api_call_total.labels(api_type="k8s", operation=f"{operation}_{kind.lower()}", result="unreachable").inc()
            raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=f"{operation}_{kind.lower()}").observe(duration)

    def get(self, namespace: str, name: str, kind: str) -> dict[str, Any] | None:
        """Return the object as a dict, or None if it does not exist."""
        ops = self._operations(kind)
        try:
            obj = self._call(kind, "read", lambda: ops["read"](name=name, namespace=namespace))
        except ApiException as e:
            if e.status == 404:
                return None
            raise
        return _to_dict(obj)

    def create(self, resource: ChildResource) -> Any:
        ops = self._operations(resource.kind)
        return self._call(
            resource.kind,
            "create",
            lambda: ops["create"](namespace=resource.namespace, body=resource.body, field_manager=FIELD_MANAGER),
        )

    def update(self, resource: ChildResource) -> Any:
        ops = self._operations(resource.kind)
        return self._call(
            resource.kind,
            "patch",
            lambda: ops["patch"](
                name=resource.name,
                namespace=resource.namespace,
                body=resource.body,
                field_manager=FIELD_MANAGER,
            ),
        )

    def delete(self, namespace: str, name: str, kind: str) -> bool:
        """Delete an object; an absent object counts as deleted.

        Returns:
            True if an object was deleted, False if it did not exist
        """
        ops = self._operations(kind)
        try:
            self._call(kind, "delete", lambda: ops["delete"](name=name, namespace=namespace))
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        return True

    def converge(self, resource: ChildResource) -> str:
        """Create the resource if absent, update it if it drifted.

        Returns:
            "created", "updated" or "unchanged"

        Raises:
            SubResourceConvergenceError: If any API call fails or the API server is unreachable
        """
        kind, namespace, name = resource.kind, resource.namespace, resource.name
        try:
            existing = self.get(namespace, name, kind)
            if existing is None:
                self.create(resource)
                operation = "created"
            elif needs_update(existing, resource.body):
                self.update(resource)
                operation = "updated"
            else:
                operation = "unchanged"
        except CLUSTER_API_ERRORS as e:
            metrics.child_resource_operations_total.labels(
                resource_kind=kind, operation="converge", result="failed"
            ).inc()
            raise SubResourceConvergenceError(kind, namespace, name, e) from e

        metrics.child_resource_operations_total.labels(resource_kind=kind, operation=operation, result="success").inc()
        logger.debug(f"{kind} {namespace}/{name} {operation}")
        return operation

    def remove(self, resource: ChildResource) -> bool:
        """Delete a manually finalized resource.

        Raises:
            SubResourceConvergenceError: If the delete call fails for any reason other than 404,
                including an unreachable API server
        """
        try:
            deleted = self.delete(resource.namespace, resource.name, resource.kind)
        except CLUSTER_API_ERRORS as e:
            metrics.child_resource_operations_total.labels(
                resource_kind=resource.kind, operation="delete", result="failed"
            ).inc()
            raise SubResourceConvergenceError(resource.kind, resource.namespace, resource.name, e) from e

        metrics.child_resource_operations_total.labels(
            resource_kind=resource.kind, operation="delete", result="success" if deleted else "absent"
        ).inc()
        return deleted


def _is_subset(desired: Any, observed: Any) -> bool:
    if isinstance(desired, dict):
        if not isinstance(observed, dict):
            return False
        return all(_is_subset(value, observed.get(key)) for key, value in desired.items())
    if isinstance(desired, list):
        if not isinstance(observed, list) or len(desired) != len(observed):
            return False
        return all(_is_subset(d, o) for d, o in zip(desired, observed))
    return desired == observed


def needs_update(observed: dict[str, Any], desired: dict[str, Any]) -> bool:
    """Detect drift between an observed object and the desired manifest.

    Only fields present in the desired manifest are compared; server-populated
    fields (clusterIP, status, defaults) are ignored.
    """
    observed_meta = observed.get("metadata") or {}
    desired_meta = desired.get("metadata") or {}
    if not _is_subset(desired_meta.get("labels") or {}, observed_meta.get("labels") or {}):
        return True
    if not _is_subset(desired.get("spec") or {}, observed.get("spec") or {}):
        return True
    return False
