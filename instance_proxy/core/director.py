import logging
from instance_proxy.resolvers import WorkloadResolver, EndpointResolver
from instance_proxy.cluster.models import Resolution, ERROR_PATH
from instance_proxy.core.errors import ResolutionError
from instance_proxy.core.extractor import extract_identifier, strip_instance_prefix
from instance_proxy.core.destination import build_destination

class Director:
    """Resolves an inbound path into a destination and an outbound path.

    Each call runs extract, resolve workload, resolve endpoint and build
    destination once, in that order, with no retries and no state kept
    between calls.
    """

    def __init__(self, workload_resolver: WorkloadResolver, endpoint_resolver: EndpointResolver,
                 timeout: float = 5.0):
        self.workload_resolver = workload_resolver
        self.endpoint_resolver = endpoint_resolver
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def resolve(self, path: str) -> Resolution:
        """Runs the pipeline, raising a ResolutionError from whichever stage fails."""
        identifier = extract_identifier(path)
        try:
            workload = self.workload_resolver.resolve(identifier, self.timeout)
            endpoint = self.endpoint_resolver.resolve(workload, self.timeout)
            destination = build_destination(endpoint)
        except ResolutionError as e:
            # Errors from the lower layers only know the object they looked at
            e.identifier = identifier
            raise

        return Resolution(
            identifier=identifier,
            destination=destination,
            path=strip_instance_prefix(path, identifier)
        )

    def direct(self, path: str) -> Resolution:
        """Same as resolve(), but failures become a resolution pointing at the error path."""
        try:
            return self.resolve(path)
        except ResolutionError as e:
            self._log_failure(e)
            return Resolution(identifier=e.identifier, path=ERROR_PATH)

    def _log_failure(self, error: ResolutionError) -> None:
        namespace = error.namespace or "*"
        self.logger.warning(
            f"{type(error).__name__} at stage {error.stage} "
            f"(identifier={error.identifier}, namespace={namespace}): {error}"
        )
