from typing import Optional
import logging
from instance_proxy.resolvers import WorkloadResolver, EndpointResolver
from instance_proxy.cluster.client import ClusterClient
from instance_proxy.cluster.models import Workload, Endpoint
from instance_proxy.cluster.selectors import format_selector, selector_from_map
from instance_proxy.core.errors import WorkloadNotFound, NoSelectorDefined, EndpointNotFound

class ByNameWorkloadResolver(WorkloadResolver):
    """Finds the deployment whose name equals the identifier.

    Names are only unique within a namespace. When no namespace is configured
    and several namespaces hold a deployment of that name, whichever the API
    lists first is used.
    """

    def __init__(self, cluster: ClusterClient, namespace: Optional[str] = None):
        super().__init__(cluster)
        self.namespace = namespace or None
        self.logger = logging.getLogger(__name__)

    def resolve(self, identifier: str, timeout: float) -> Workload:
        workloads = self.cluster.find_deployments(identifier, self.namespace, timeout)
        if not workloads:
            raise WorkloadNotFound(
                f"deployment {identifier} not found", identifier=identifier, namespace=self.namespace
            )
        if len(workloads) > 1:
            self.logger.debug(f"{len(workloads)} deployments named {identifier}, using the first one")
        return workloads[0]

class SelectorRequeryEndpointResolver(EndpointResolver):
    """Finds the service whose selector is the deployment's own selector."""

    def resolve(self, workload: Workload, timeout: float) -> Endpoint:
        if workload.selector is None or workload.selector.is_empty():
            raise NoSelectorDefined(
                f"deployment {workload.name} has no selector defined",
                identifier=workload.name, namespace=workload.namespace
            )

        wanted = format_selector(workload.selector)
        services = self.cluster.list_services(workload.namespace, timeout)
        for service in services:
            if format_selector(selector_from_map(service.selector)) == wanted:
                return service

        raise EndpointNotFound(
            f"no service with selector {wanted} for deployment {workload.name}",
            identifier=workload.name, namespace=workload.namespace
        )
