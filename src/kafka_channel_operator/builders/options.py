"""Construction options shared by all child resource builders."""

from __future__ import annotations

from ..constants import LABEL_CHANNEL_NAME, LABEL_CHANNEL_NAMESPACE
from ..utils.errors import ResourceBuildError
from . import ChildResource, Ownership, ResourceOption, sync_metadata


def with_name(name: str) -> ResourceOption:
    """Rename the resource."""

    def _with_name(resource: ChildResource) -> None:
        if not name:
            raise ResourceBuildError(f"{resource.kind} name must not be empty")
        resource.name = name
        sync_metadata(resource)

    return _with_name


def with_labels(labels: dict[str, str]) -> ResourceOption:
    """Merge labels into the resource metadata."""

    def _with_labels(resource: ChildResource) -> None:
        metadata = resource.body.setdefault("metadata", {})
        metadata.setdefault("labels", {}).update(labels)

    return _with_labels


def in_namespace(namespace: str) -> ResourceOption:
    """Move the resource to another namespace.

    Owner references cannot cross namespaces, so moving away from the channel's
    namespace drops them, labels the resource with the channel identity, and
    marks it for manual finalization.
    """

    def _in_namespace(resource: ChildResource) -> None:
        if not namespace:
            raise ResourceBuildError("namespace must not be empty")
        if namespace == resource.namespace:
            return

        metadata = resource.body.setdefault("metadata", {})
        owners = metadata.pop("ownerReferences", None) or []
        labels = metadata.setdefault("labels", {})
        labels[LABEL_CHANNEL_NAMESPACE] = resource.namespace
        if owners:
            labels[LABEL_CHANNEL_NAME] = owners[0]["name"]

        resource.namespace = namespace
        resource.ownership = Ownership.MANUALLY_FINALIZED
        sync_metadata(resource)

    return _in_namespace
