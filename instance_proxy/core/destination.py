from instance_proxy.cluster.models import Endpoint, Destination, ServicePort
from instance_proxy.core.errors import NoPortsDefined

CLUSTER_DOMAIN = "svc.cluster.local"
PREFERRED_PORT_NAME = "http"

def select_port(endpoint: Endpoint) -> ServicePort:
    """Picks the port named "http" wherever it appears, else the first declared one."""
    if not endpoint.ports:
        raise NoPortsDefined(
            f"service {endpoint.name} has no ports defined", identifier=endpoint.name, namespace=endpoint.namespace
        )
    for port in endpoint.ports:
        if port.name == PREFERRED_PORT_NAME:
            return port
    return endpoint.ports[0]

def build_destination(endpoint: Endpoint) -> Destination:
    # Plain http only; TLS is left to the mesh in front of the service
    port = select_port(endpoint)
    return Destination(
        scheme="http",
        host=f"{endpoint.name}.{endpoint.namespace}.{CLUSTER_DOMAIN}",
        port=port.port
    )
