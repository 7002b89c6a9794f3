from abc import ABC, abstractmethod
from instance_proxy.cluster.client import ClusterClient
from instance_proxy.cluster.models import Workload, Endpoint

class WorkloadResolver(ABC):
    def __init__(self, cluster: ClusterClient):
        self.cluster = cluster

    @abstractmethod
    def resolve(self, identifier: str, timeout: float) -> Workload:
        """Returns the workload addressed by the identifier."""
        pass

class EndpointResolver(ABC):
    def __init__(self, cluster: ClusterClient):
        self.cluster = cluster

    @abstractmethod
    def resolve(self, workload: Workload, timeout: float) -> Endpoint:
        """Returns the service exposing the workload."""
        pass
