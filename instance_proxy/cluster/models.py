from typing import Optional, List, Dict
from pydantic import BaseModel, ConfigDict, Field
from enum import Enum

ERROR_PATH = "/error"

class Strategy(str, Enum):
    DEPLOYMENT_NAME = "deployment_name" # by-name lookup + selector requery
    POD_NAME = "pod_name" # by-replica-name scan + label scan

class WorkloadKind(str, Enum):
    DEPLOYMENT = "Deployment"
    POD = "Pod"

class SelectorOperator(str, Enum):
    IN = "In"
    NOT_IN = "NotIn"
    EXISTS = "Exists"
    DOES_NOT_EXIST = "DoesNotExist"

class LabelSelectorRequirement(BaseModel):
    key: str
    operator: SelectorOperator
    values: List[str] = Field(default_factory=list)

class LabelSelector(BaseModel):
    match_labels: Dict[str, str] = Field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.match_labels and not self.match_expressions

class Workload(BaseModel):
    """A deployment, or a single pod standing in for one."""
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    kind: WorkloadKind = WorkloadKind.DEPLOYMENT
    selector: Optional[LabelSelector] = None
    labels: Dict[str, str] = Field(default_factory=dict)

class ServicePort(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: Optional[str] = None
    port: int

class Endpoint(BaseModel):
    """A Kubernetes service fronting workload replicas."""
    model_config = ConfigDict(frozen=True)

    name: str
    namespace: str
    selector: Dict[str, str] = Field(default_factory=dict)
    ports: List[ServicePort] = Field(default_factory=list)

class Destination(BaseModel):
    model_config = ConfigDict(frozen=True)

    scheme: str = "http"
    host: str
    port: int

    @property
    def netloc(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def url(self) -> str:
        return f"{self.scheme}://{self.netloc}"

class Resolution(BaseModel):
    """Outcome of resolving one inbound request path.

    A failed resolution carries no destination and points at the error path.
    """
    model_config = ConfigDict(frozen=True)

    identifier: Optional[str] = None
    destination: Optional[Destination] = None
    path: str = ERROR_PATH

    @property
    def is_error(self) -> bool:
        return self.destination is None
