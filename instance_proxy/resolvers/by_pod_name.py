from typing import Optional
from instance_proxy.resolvers import WorkloadResolver, EndpointResolver
from instance_proxy.cluster.client import ClusterClient
from instance_proxy.cluster.models import Workload, Endpoint
from instance_proxy.cluster.selectors import matches, selector_from_map
from instance_proxy.core.errors import (
    WorkloadNotFound, NoLabelsOnWorkload, NoEndpointsInNamespace, EndpointNotFound
)

class ByPodNameWorkloadResolver(WorkloadResolver):
    """Scans every pod for one named exactly like the identifier.

    Pods change constantly, so the list is read live on each request and
    scanned linearly.
    """

    def __init__(self, cluster: ClusterClient, namespace: Optional[str] = None):
        super().__init__(cluster)
        self.namespace = namespace or None

    def resolve(self, identifier: str, timeout: float) -> Workload:
        for pod in self.cluster.iter_pods(self.namespace, timeout):
            if pod.name == identifier:
                return pod
        raise WorkloadNotFound(f"pod {identifier} not found", identifier=identifier, namespace=self.namespace)

class LabelScanEndpointResolver(EndpointResolver):
    """Finds the first service whose selector matches the pod's labels."""

    def resolve(self, workload: Workload, timeout: float) -> Endpoint:
        if not workload.labels:
            raise NoLabelsOnWorkload(
                f"pod {workload.name} has no labels", identifier=workload.name, namespace=workload.namespace
            )

        services = self.cluster.list_services(workload.namespace, timeout)
        if not services:
            raise NoEndpointsInNamespace(
                f"no services in namespace {workload.namespace}",
                identifier=workload.name, namespace=workload.namespace
            )

        for service in services:
            selector = selector_from_map(service.selector)
            # A service without a selector must not swallow every pod
            if selector.is_empty():
                continue
            if matches(selector, workload.labels):
                return service

        raise EndpointNotFound(
            f"no service selects pod {workload.name}", identifier=workload.name, namespace=workload.namespace
        )
