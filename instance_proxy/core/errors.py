from typing import Optional


class ResolutionError(Exception):
    """Base class for every failure of the request-time resolution pipeline.

    None of these are retried; the director logs them and answers the
    request with the fixed error response.
    """
    stage = "resolve"

    def __init__(self, message: str, identifier: Optional[str] = None, namespace: Optional[str] = None):
        super().__init__(message)
        self.identifier = identifier
        self.namespace = namespace


class InvalidPathFormat(ResolutionError):
    stage = "extract"

    def __init__(self, path: str):
        super().__init__(f"invalid path format: {path}")
        self.path = path


class WorkloadNotFound(ResolutionError):
    stage = "resolve_workload"


class DiscoveryTimeout(ResolutionError):
    stage = "discovery"


class ClusterQueryError(ResolutionError):
    """The cluster API answered with an error other than a timeout."""
    stage = "discovery"


class NoSelectorDefined(ResolutionError):
    stage = "resolve_endpoint"


class NoLabelsOnWorkload(ResolutionError):
    stage = "resolve_endpoint"


class NoEndpointsInNamespace(ResolutionError):
    stage = "resolve_endpoint"


class EndpointNotFound(ResolutionError):
    stage = "resolve_endpoint"


class NoPortsDefined(ResolutionError):
    stage = "build_destination"


class ClusterClientError(Exception):
    """Raised when the cluster client cannot be built at startup."""
