import pytest
import sys
import os
from typing import List, Optional
from unittest.mock import MagicMock
from flask import Request
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from instance_proxy.cluster.models import Workload, WorkloadKind, Endpoint, ServicePort, LabelSelector
from instance_proxy.core.errors import DiscoveryTimeout


class FakeClusterClient:
    """In-memory stand-in for ClusterClient, listing objects in insertion order."""

    def __init__(self, deployments: Optional[List[Workload]] = None, pods: Optional[List[Workload]] = None,
                 services: Optional[List[Endpoint]] = None):
        self.deployments = deployments or []
        self.pods = pods or []
        self.services = services or []
        self.timeout_on: set = set()
        self.calls: List[tuple] = []

    def _maybe_timeout(self, operation: str, namespace: Optional[str]):
        if operation in self.timeout_on:
            raise DiscoveryTimeout(f"{operation} timed out", namespace=namespace)

    def find_deployments(self, name: str, namespace: Optional[str], timeout: float) -> List[Workload]:
        self.calls.append(('find_deployments', name, namespace, timeout))
        self._maybe_timeout('find_deployments', namespace)
        return [d for d in self.deployments if d.name == name and (namespace is None or d.namespace == namespace)]

    def iter_pods(self, namespace: Optional[str], timeout: float):
        self.calls.append(('iter_pods', namespace, timeout))
        self._maybe_timeout('iter_pods', namespace)
        for pod in self.pods:
            if namespace is None or pod.namespace == namespace:
                yield pod

    def list_services(self, namespace: str, timeout: float) -> List[Endpoint]:
        self.calls.append(('list_services', namespace, timeout))
        self._maybe_timeout('list_services', namespace)
        return [s for s in self.services if s.namespace == namespace]


@pytest.fixture
def make_cluster():
    """Returns the fake cluster class so tests can build their own cluster state"""
    return FakeClusterClient


@pytest.fixture
def web_deployment():
    """The web-1 deployment from the routing scenarios"""
    return Workload(
        name="web-1",
        namespace="default",
        kind=WorkloadKind.DEPLOYMENT,
        selector=LabelSelector(match_labels={"app": "web"}),
        labels={"app": "web"}
    )


@pytest.fixture
def web_pod():
    """A single pod of the web deployment"""
    return Workload(
        name="web-1-7d9c8-abcde",
        namespace="default",
        kind=WorkloadKind.POD,
        labels={"app": "web", "pod-template-hash": "7d9c8"}
    )


@pytest.fixture
def web_service():
    """Service selecting app=web with the http port declared second"""
    return Endpoint(
        name="web-svc",
        namespace="default",
        selector={"app": "web"},
        ports=[ServicePort(name="grpc", port=9000), ServicePort(name="http", port=8080)]
    )


@pytest.fixture
def fake_cluster(web_deployment, web_pod, web_service):
    """A fake cluster holding the web deployment, one of its pods and its service"""
    return FakeClusterClient(deployments=[web_deployment], pods=[web_pod], services=[web_service])


@pytest.fixture
def mock_request():
    """Creates a mock Flask request"""
    request = MagicMock(spec=Request)
    request.headers = {'Host': 'proxy.example.com', 'User-Agent': 'test-agent'}
    request.method = 'GET'
    request.remote_addr = '192.168.1.1'
    request.path = '/instance/web-1/api/users'
    request.query_string = b''
    request.get_data = MagicMock(return_value=b'')
    return request
