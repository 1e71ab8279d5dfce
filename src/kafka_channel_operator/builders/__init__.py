"""Builders for desired-state descriptors of KafkaChannel dependents."""

from __future__ import annotations

import copy
import enum
from dataclasses import dataclass
from typing import Any, Callable

from ..utils.errors import ResourceBuildError


class Ownership(enum.Enum):
    """How a child resource is removed when its channel is deleted."""

    # Same namespace: owner reference, cascade-deleted by the cluster
    GARBAGE_COLLECTED = "GarbageCollected"
    # Foreign namespace: no owner reference, deleted by finalization
    MANUALLY_FINALIZED = "ManuallyFinalized"


@dataclass
class ChildResource:
    """Desired state for one Kubernetes object owned by a KafkaChannel."""

    kind: str
    namespace: str
    name: str
    body: dict[str, Any]
    ownership: Ownership = Ownership.GARBAGE_COLLECTED

    @property
    def needs_finalization(self) -> bool:
        return self.ownership is Ownership.MANUALLY_FINALIZED


# A construction option mutates the draft in place and raises to abort
ResourceOption = Callable[[ChildResource], None]


def apply_options(draft: ChildResource, options: tuple[ResourceOption, ...]) -> ChildResource:
    """Apply options in order to a copy of the draft.

    The first failing option aborts construction. The draft passed in is never
    modified, so no partially-mutated descriptor escapes.

    Raises:
        ResourceBuildError: If any option fails
    """
    working = copy.deepcopy(draft)
    for option in options:
        try:
            option(working)
        except ResourceBuildError:
            raise
        except Exception as e:
            option_name = getattr(option, "__name__", type(option).__name__)
            raise ResourceBuildError(
                f"Failed to build {draft.kind} {draft.namespace}/{draft.name}: option {option_name} failed: {e}"
            ) from e
    return working


def sync_metadata(resource: ChildResource) -> None:
    """Copy descriptor identity into the manifest metadata."""
    metadata = resource.body.setdefault("metadata", {})
    metadata["name"] = resource.name
    metadata["namespace"] = resource.namespace
