from typing import Dict, Type, Tuple, Optional
from instance_proxy.resolvers import WorkloadResolver, EndpointResolver
from instance_proxy.resolvers.by_name import ByNameWorkloadResolver, SelectorRequeryEndpointResolver
from instance_proxy.resolvers.by_pod_name import ByPodNameWorkloadResolver, LabelScanEndpointResolver
from instance_proxy.cluster.client import ClusterClient
from instance_proxy.cluster.models import Strategy

class StrategyFactory:
    _strategies: Dict[Strategy, Tuple[Type[WorkloadResolver], Type[EndpointResolver]]] = {
        Strategy.DEPLOYMENT_NAME: (ByNameWorkloadResolver, SelectorRequeryEndpointResolver),
        Strategy.POD_NAME: (ByPodNameWorkloadResolver, LabelScanEndpointResolver)
    }

    @classmethod
    def get_resolvers(cls, strategy: Strategy, cluster: ClusterClient,
                      namespace: Optional[str] = None) -> Tuple[WorkloadResolver, EndpointResolver]:
        """
        Factory method returning the workload and endpoint resolvers of one strategy pair
        """
        try:
            strategy = Strategy(strategy)
        except ValueError:
            raise ValueError(f"Strategy '{strategy}' not supported")

        workload_class, endpoint_class = cls._strategies[strategy]
        return workload_class(cluster, namespace), endpoint_class(cluster)
