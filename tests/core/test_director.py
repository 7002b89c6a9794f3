import logging
import pytest
from instance_proxy.cluster.models import Endpoint, ERROR_PATH
from instance_proxy.core.director import Director
from instance_proxy.core.errors import (
    InvalidPathFormat, WorkloadNotFound, DiscoveryTimeout
)
from instance_proxy.resolvers.by_name import ByNameWorkloadResolver, SelectorRequeryEndpointResolver
from instance_proxy.resolvers.by_pod_name import ByPodNameWorkloadResolver, LabelScanEndpointResolver


@pytest.fixture
def director(fake_cluster):
    return Director(
        ByNameWorkloadResolver(fake_cluster, "default"),
        SelectorRequeryEndpointResolver(fake_cluster),
        timeout=5.0
    )


def test_resolve_rewrites_path(director):
    """GET /instance/web-1/api/users goes to web-svc on its http port"""
    resolution = director.resolve("/instance/web-1/api/users")

    assert not resolution.is_error
    assert resolution.identifier == "web-1"
    assert resolution.destination.url == "http://web-svc.default.svc.cluster.local:8080"
    assert resolution.path == "/api/users"


def test_resolve_without_trailing_path(director):
    """GET /instance/web-1 is rewritten to the root path"""
    resolution = director.resolve("/instance/web-1")
    assert resolution.path == "/"


def test_resolve_is_repeatable(director):
    """The same cluster state yields the same destination"""
    assert director.resolve("/instance/web-1/x") == director.resolve("/instance/web-1/x")


def test_resolve_passes_timeout(director, fake_cluster):
    director.resolve("/instance/web-1")
    assert ('find_deployments', 'web-1', 'default', 5.0) in fake_cluster.calls
    assert ('list_services', 'default', 5.0) in fake_cluster.calls


def test_resolve_invalid_path(director, fake_cluster):
    with pytest.raises(InvalidPathFormat):
        director.resolve("/api/users")
    assert fake_cluster.calls == []


def test_resolve_unknown_workload(director):
    with pytest.raises(WorkloadNotFound) as exc_info:
        director.resolve("/instance/unknown")
    assert exc_info.value.identifier == "unknown"


def test_direct_unknown_workload(director, fake_cluster):
    """Unknown identifiers are sent to the error path and no service is looked up"""
    resolution = director.direct("/instance/unknown")

    assert resolution.is_error
    assert resolution.path == ERROR_PATH
    assert resolution.destination is None
    assert not any(call[0] == 'list_services' for call in fake_cluster.calls)


def test_direct_endpoint_not_found_is_logged(director, fake_cluster, caplog):
    """A deployment no service selects is logged as EndpointNotFound"""
    fake_cluster.services = []

    with caplog.at_level(logging.WARNING, logger="instance_proxy.core.director"):
        resolution = director.direct("/instance/web-1/api")

    assert resolution.is_error
    assert resolution.identifier == "web-1"
    assert "EndpointNotFound" in caplog.text
    assert "identifier=web-1" in caplog.text
    assert "namespace=default" in caplog.text


def test_direct_service_without_ports(director, fake_cluster, caplog):
    """Workload and endpoint both resolve but the service has no ports"""
    fake_cluster.services = [Endpoint(name="web-svc", namespace="default", selector={"app": "web"}, ports=[])]

    with caplog.at_level(logging.WARNING, logger="instance_proxy.core.director"):
        resolution = director.direct("/instance/web-1")

    assert resolution.is_error
    assert "NoPortsDefined" in caplog.text
    assert "identifier=web-1" in caplog.text


def test_direct_discovery_timeout(director, fake_cluster, caplog):
    fake_cluster.timeout_on.add('find_deployments')

    with caplog.at_level(logging.WARNING, logger="instance_proxy.core.director"):
        resolution = director.direct("/instance/web-1")

    assert resolution.is_error
    assert "DiscoveryTimeout" in caplog.text


def test_timeout_raises_from_resolve_only(director, fake_cluster):
    fake_cluster.timeout_on.add('list_services')
    with pytest.raises(DiscoveryTimeout):
        director.resolve("/instance/web-1")
    assert director.direct("/instance/web-1").is_error


def test_pod_strategy_resolves(fake_cluster, web_pod):
    director = Director(
        ByPodNameWorkloadResolver(fake_cluster),
        LabelScanEndpointResolver(fake_cluster)
    )

    resolution = director.resolve(f"/instance/{web_pod.name}/healthz")

    assert resolution.identifier == web_pod.name
    assert resolution.destination.host == "web-svc.default.svc.cluster.local"
    assert resolution.destination.port == 8080
    assert resolution.path == "/healthz"
