"""Builder for KafkaChannel Services."""

from __future__ import annotations

from typing import Any

from ..constants import (
    CONTAINER_PORT_NUMBER,
    KIND_SERVICE,
    LABEL_MESSAGING_ROLE,
    MESSAGING_ROLE,
    PORT_NAME,
    PORT_NUMBER,
)
from ..models import KafkaChannel, service_dns_name
from ..utils.errors import ResourceBuildError
from . import ChildResource, Ownership, ResourceOption, apply_options


def build_service(channel: KafkaChannel, *options: ResourceOption) -> ChildResource:
    """Build the desired Service for a channel.

    The default is the channel's front-end Service: ``<name>-kn-channel`` in the
    channel's namespace, one named TCP port, the messaging-role label, and a
    controller owner reference to the channel.

    Args:
        channel: The owning KafkaChannel
        options: Construction options, applied in order

    Returns:
        The Service descriptor

    Raises:
        ResourceBuildError: If any option fails
    """
    body: dict[str, Any] = {
        "apiVersion": "v1",
        "kind": KIND_SERVICE,
        "metadata": {
            "name": channel.service_name,
            "namespace": channel.namespace,
            "labels": {LABEL_MESSAGING_ROLE: MESSAGING_ROLE},
            "ownerReferences": [channel.owner_reference()],
        },
        "spec": {
            "ports": [
                {
                    "name": PORT_NAME,
                    "protocol": "TCP",
                    "port": PORT_NUMBER,
                    "targetPort": CONTAINER_PORT_NUMBER,
                }
            ],
        },
    }
    draft = ChildResource(
        kind=KIND_SERVICE,
        namespace=channel.namespace,
        name=channel.service_name,
        body=body,
        ownership=Ownership.GARBAGE_COLLECTED,
    )
    return apply_options(draft, options)


def external_service(namespace: str, name: str) -> ResourceOption:
    """Redirect the Service to ``<name>.<namespace>.svc.cluster.local``.

    Replaces the port-based spec with an ExternalName spec.
    """

    def _external_service(resource: ChildResource) -> None:
        if not namespace or not name:
            raise ResourceBuildError("external service requires both a namespace and a name")
        resource.body["spec"] = {
            "type": "ExternalName",
            "externalName": service_dns_name(name, namespace),
        }

    return _external_service


def with_selector(selector: dict[str, str]) -> ResourceOption:
    def _with_selector(resource: ChildResource) -> None:
        spec = resource.body.setdefault("spec", {})
        if spec.get("type") == "ExternalName":
            raise ResourceBuildError("an ExternalName service cannot have a selector")
        spec["selector"] = dict(selector)

    return _with_selector


def with_ports(*ports: dict[str, Any]) -> ResourceOption:
    """Replace the Service's port list."""

    def _with_ports(resource: ChildResource) -> None:
        if not ports:
            raise ResourceBuildError("at least one port is required")
        for port in ports:
            if "name" not in port or "port" not in port:
                raise ResourceBuildError(f"port {port!r} needs a name and a port number")
        resource.body.setdefault("spec", {})["ports"] = [{"protocol": "TCP", **port} for port in ports]

    return _with_ports
