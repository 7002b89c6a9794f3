import time
import logging
from typing import Optional, List, Iterator
import urllib3
from kubernetes import client, config as kube_config
from kubernetes.client.rest import ApiException
from instance_proxy.cluster.models import (
    Workload, WorkloadKind, Endpoint, ServicePort, LabelSelector, LabelSelectorRequirement
)
from instance_proxy.core.errors import (
    ClusterClientError, ClusterQueryError, DiscoveryTimeout, ResolutionError
)

logger = logging.getLogger(__name__)

# --- Conversion helpers ---

def deployment_to_workload(deployment: client.V1Deployment) -> Workload:
    """Converts a V1Deployment into a Workload carrying its declared selector."""
    selector = None
    spec_selector = deployment.spec.selector if deployment.spec else None
    if spec_selector is not None:
        selector = LabelSelector(
            match_labels=dict(spec_selector.match_labels or {}),
            match_expressions=[
                LabelSelectorRequirement(key=req.key, operator=req.operator, values=list(req.values or []))
                for req in (spec_selector.match_expressions or [])
            ]
        )
    return Workload(
        name=deployment.metadata.name,
        namespace=deployment.metadata.namespace,
        kind=WorkloadKind.DEPLOYMENT,
        selector=selector,
        labels=dict(deployment.metadata.labels or {})
    )

def pod_to_workload(pod: client.V1Pod) -> Workload:
    """Converts a V1Pod into a Workload carrying the pod's own labels."""
    return Workload(
        name=pod.metadata.name,
        namespace=pod.metadata.namespace,
        kind=WorkloadKind.POD,
        labels=dict(pod.metadata.labels or {})
    )

def service_to_endpoint(service: client.V1Service) -> Endpoint:
    """Converts a V1Service into an Endpoint, keeping the declared port order."""
    spec = service.spec
    return Endpoint(
        name=service.metadata.name,
        namespace=service.metadata.namespace,
        selector=dict((spec.selector if spec else None) or {}),
        ports=[ServicePort(name=p.name, port=p.port) for p in ((spec.ports if spec else None) or [])]
    )


def build_api_client(configuration: Optional[client.Configuration] = None,
                     user_agent: Optional[str] = None) -> client.ApiClient:
    """Builds an ApiClient whose requests are never retried by urllib3.

    Each call gets a single attempt, so its _request_timeout bounds it.
    """
    configuration = configuration or client.Configuration.get_default_copy()
    configuration.retries = False
    api_client = client.ApiClient(configuration)
    if user_agent:
        api_client.user_agent = user_agent
    return api_client


class ClusterClient:
    """Thin read-only view of the cluster used by the resolvers.

    Every call is bounded by the caller's timeout. Timeouts surface as
    DiscoveryTimeout, any other API failure as ClusterQueryError. The
    underlying ApiClient is shared by all request threads.
    """

    def __init__(self, api_client: Optional[client.ApiClient] = None, page_size: int = 500):
        api_client = api_client or build_api_client()
        self.apps_api = client.AppsV1Api(api_client)
        self.core_api = client.CoreV1Api(api_client)
        self.page_size = page_size

    def _call(self, description: str, namespace: Optional[str], func, *args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ApiException as e:
            raise ClusterQueryError(f"{description} failed: {e.status} {e.reason}", namespace=namespace) from e
        except urllib3.exceptions.NewConnectionError as e:
            raise ClusterQueryError(f"{description} failed: {e}", namespace=namespace) from e
        except urllib3.exceptions.TimeoutError as e:
            raise DiscoveryTimeout(f"{description} timed out: {e}", namespace=namespace) from e
        except urllib3.exceptions.MaxRetryError as e:
            # Refused connections subclass ConnectTimeoutError in older urllib3 releases
            if isinstance(e.reason, urllib3.exceptions.TimeoutError) and \
                    not isinstance(e.reason, urllib3.exceptions.NewConnectionError):
                raise DiscoveryTimeout(f"{description} timed out: {e.reason}", namespace=namespace) from e
            raise ClusterQueryError(f"{description} failed: {e.reason}", namespace=namespace) from e

    def find_deployments(self, name: str, namespace: Optional[str], timeout: float) -> List[Workload]:
        """Lists deployments named exactly `name`, in one namespace or in all of them."""
        field_selector = f"metadata.name={name}"
        if namespace:
            result = self._call(
                f"listing deployments named {name}", namespace,
                self.apps_api.list_namespaced_deployment, namespace,
                field_selector=field_selector, _request_timeout=timeout
            )
        else:
            result = self._call(
                f"listing deployments named {name}", None,
                self.apps_api.list_deployment_for_all_namespaces,
                field_selector=field_selector, _request_timeout=timeout
            )
        return [deployment_to_workload(d) for d in result.items]

    def iter_pods(self, namespace: Optional[str], timeout: float) -> Iterator[Workload]:
        """Yields every pod page by page. The timeout is a deadline for the whole enumeration."""
        deadline = time.monotonic() + timeout
        continue_token = None
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise DiscoveryTimeout(f"listing pods exceeded {timeout}s", namespace=namespace)

            kwargs = {'limit': self.page_size, '_request_timeout': remaining}
            if continue_token:
                kwargs['_continue'] = continue_token

            if namespace:
                page = self._call("listing pods", namespace, self.core_api.list_namespaced_pod, namespace, **kwargs)
            else:
                page = self._call("listing pods", None, self.core_api.list_pod_for_all_namespaces, **kwargs)

            for pod in page.items:
                yield pod_to_workload(pod)

            continue_token = page.metadata._continue if page.metadata else None
            if not continue_token:
                return

    def list_services(self, namespace: str, timeout: float) -> List[Endpoint]:
        """Lists every service in a namespace, in the order the API returns them."""
        result = self._call(
            "listing services", namespace,
            self.core_api.list_namespaced_service, namespace,
            _request_timeout=timeout
        )
        return [service_to_endpoint(s) for s in result.items]

    def check_namespace(self, namespace: str, timeout: float) -> None:
        """Reads the namespace object, raising if it is missing or not readable."""
        self._call(
            f"reading namespace {namespace}", namespace,
            self.core_api.read_namespace, namespace,
            _request_timeout=timeout
        )


def create_cluster_client(kubeconfig: Optional[str] = None, namespace: Optional[str] = None,
                          user_agent: Optional[str] = None, verify_namespace: bool = True,
                          page_size: int = 500, timeout: float = 5) -> ClusterClient:
    """Builds the process-wide cluster client.

    Uses the given kubeconfig file, otherwise the in-cluster service account,
    otherwise the default kubeconfig. Raises ClusterClientError on failure.
    """
    try:
        if kubeconfig:
            kube_config.load_kube_config(config_file=kubeconfig)
        else:
            try:
                kube_config.load_incluster_config()
            except kube_config.ConfigException:
                logger.info("Not running in a cluster, falling back to the default kubeconfig")
                kube_config.load_kube_config()
    except (kube_config.ConfigException, OSError) as e:
        raise ClusterClientError(f"Failed to load Kubernetes configuration: {e}") from e

    cluster = ClusterClient(build_api_client(user_agent=user_agent), page_size=page_size)

    if namespace and verify_namespace:
        try:
            cluster.check_namespace(namespace, timeout)
        except ResolutionError as e:
            raise ClusterClientError(f"Failed to access namespace {namespace}: {e}") from e
        logger.info(f"Namespace {namespace} is accessible")

    return cluster
