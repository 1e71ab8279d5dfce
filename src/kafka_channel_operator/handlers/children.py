"""Reconcilers for the Kubernetes resources that front and dispatch a KafkaChannel."""

from __future__ import annotations

from ..builders import ChildResource, apply_options
from ..builders.deployment import build_dispatcher_deployment, dispatcher_labels
from ..builders.options import in_namespace, with_labels, with_name
from ..builders.service import build_service, external_service, with_ports, with_selector
from ..config import Settings
from ..constants import (
    COND_ADDRESSABLE,
    COND_CHANNEL_SERVICE_READY,
    COND_DISPATCHER_DEPLOYMENT_READY,
    COND_DISPATCHER_SERVICE_READY,
    CONTAINER_PORT_NUMBER,
    KIND_DEPLOYMENT,
    KIND_KAFKA_CHANNEL,
    PORT_NAME,
    PORT_NUMBER,
)
from ..models import KafkaChannel, service_dns_name
from ..services.cluster.store import ClusterStore
from ..tracing import trace_span
from ..utils.errors import ResourceBuildError, SubResourceConvergenceError
from .base import BaseHandler


class ChannelReconciler(BaseHandler):
    """Converges the channel's front-end Service in the channel's namespace.

    The Service is an ExternalName redirect to the channel's dispatcher Service
    and is garbage collected through its owner reference.
    """

    def __init__(self, settings: Settings):
        super().__init__(KIND_KAFKA_CHANNEL)
        self.settings = settings

    def desired_service(self, channel: KafkaChannel) -> ChildResource:
        return build_service(channel, external_service(self.settings.system_namespace, channel.dispatcher_name))

    def reconcile(self, channel: KafkaChannel, store: ClusterStore) -> None:
        """Converge the channel Service and mark the channel addressable.

        Raises:
            SubResourceConvergenceError: If the Service cannot be built or converged
        """
        conditions = channel.status.conditions
        with trace_span("reconcile_channel_service", channel, {"k8s.service.name": channel.service_name}):
            try:
                service = self.desired_service(channel)
                store.converge(service)
            except (ResourceBuildError, SubResourceConvergenceError) as e:
                conditions.mark_false(COND_CHANNEL_SERVICE_READY, "ChannelServiceFailed",
                                      f"Channel Service failed: {e}")
                conditions.mark_false(COND_ADDRESSABLE, "ChannelServiceFailed", "Channel Service is not available")
                channel.status.address = None
                self.log_error(channel.meta, "Failed to reconcile channel Service", error=e,
                               reason="ChannelServiceFailed")
                if isinstance(e, SubResourceConvergenceError):
                    raise
                raise SubResourceConvergenceError("Service", channel.namespace, channel.service_name, e) from e

        conditions.mark_true(COND_CHANNEL_SERVICE_READY, "ChannelServiceReady", "Channel Service is ready")
        channel.status.address = f"http://{service_dns_name(channel.service_name, channel.namespace)}"
        conditions.mark_true(COND_ADDRESSABLE, "Addressable", channel.status.address)
        self.log_debug(channel.meta, "Reconciled channel Service", service=service.name)


class DispatcherReconciler(BaseHandler):
    """Converges the per-channel dispatcher Service and Deployment in the system namespace.

    Owner references cannot cross namespaces, so these are removed by
    :meth:`finalize` rather than by garbage collection.
    """

    def __init__(self, settings: Settings):
        super().__init__(KIND_KAFKA_CHANNEL)
        self.settings = settings

    def desired_service(self, channel: KafkaChannel) -> ChildResource:
        return build_service(
            channel,
            with_name(channel.dispatcher_name),
            in_namespace(self.settings.system_namespace),
            with_labels(dispatcher_labels(channel)),
            with_selector(dispatcher_labels(channel)),
            with_ports({"name": PORT_NAME, "port": PORT_NUMBER, "targetPort": CONTAINER_PORT_NUMBER}),
        )

    def desired_deployment(self, channel: KafkaChannel, secret_name: str) -> ChildResource:
        return build_dispatcher_deployment(
            channel,
            self.settings,
            secret_name,
            in_namespace(self.settings.system_namespace),
        )

    def _converge(
        self,
        channel: KafkaChannel,
        store: ClusterStore,
        condition_type: str,
        kind: str,
        build,
    ) -> SubResourceConvergenceError | None:
        conditions = channel.status.conditions
        try:
            resource = build()
            store.converge(resource)
        except (ResourceBuildError, SubResourceConvergenceError) as e:
            conditions.mark_false(condition_type, f"Dispatcher{kind}Failed", f"Dispatcher {kind} failed: {e}")
            self.log_error(channel.meta, f"Failed to reconcile dispatcher {kind}", error=e,
                           reason=f"Dispatcher{kind}Failed")
            if isinstance(e, SubResourceConvergenceError):
                return e
            return SubResourceConvergenceError(kind, self.settings.system_namespace, channel.dispatcher_name, e)

        conditions.mark_true(condition_type, f"Dispatcher{kind}Ready", f"Dispatcher {kind} is ready")
        return None

    def reconcile(self, channel: KafkaChannel, store: ClusterStore, secret_name: str) -> None:
        """Converge the dispatcher Service and Deployment; both are always attempted.

        Raises:
            SubResourceConvergenceError: The first failure, after both were attempted
        """
        with trace_span("reconcile_dispatcher", channel, {"k8s.namespace.name": self.settings.system_namespace}):
            service_error = self._converge(
                channel, store, COND_DISPATCHER_SERVICE_READY, "Service",
                lambda: self.desired_service(channel),
            )
            deployment_error = self._converge(
                channel, store, COND_DISPATCHER_DEPLOYMENT_READY, "Deployment",
                lambda: self.desired_deployment(channel, secret_name),
            )
        error = service_error or deployment_error
        if error is not None:
            raise error

    def finalization_targets(self, channel: KafkaChannel) -> list[ChildResource]:
        """Children that must be deleted explicitly, Deployment first."""
        # Identity only; deletion must not depend on the Kafka secret
        deployment = apply_options(
            ChildResource(kind=KIND_DEPLOYMENT, namespace=channel.namespace, name=channel.dispatcher_name, body={}),
            (in_namespace(self.settings.system_namespace),),
        )
        targets = [deployment, self.desired_service(channel)]
        return [target for target in targets if target.needs_finalization]

    def finalize(self, channel: KafkaChannel, store: ClusterStore) -> None:
        """Delete the dispatcher's cross-namespace resources; absent resources are fine.

        Raises:
            SubResourceConvergenceError: If any deletion fails
        """
        with trace_span("finalize_dispatcher", channel, {"k8s.namespace.name": self.settings.system_namespace}):
            try:
                targets = self.finalization_targets(channel)
            except ResourceBuildError as e:
                raise SubResourceConvergenceError(
                    KIND_DEPLOYMENT, self.settings.system_namespace, channel.dispatcher_name, e
                ) from e
            for target in targets:
                deleted = store.remove(target)
                self.log_info(
                    channel.meta,
                    f"{'Deleted' if deleted else 'Skipped absent'} dispatcher {target.kind} "
                    f"{target.namespace}/{target.name}",
                    reason="DispatcherFinalized",
                    resource_kind=target.kind,
                )
