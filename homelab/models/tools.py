"""Tool request and payload models."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Discriminators
# ---------------------------------------------------------------------------


class FluxResourceType(str, Enum):
    kustomization = "kustomization"
    helmrelease = "helmrelease"
    all = "all"


class ReconcileResourceType(str, Enum):
    kustomization = "kustomization"
    helmrelease = "helmrelease"


class LogLevel(str, Enum):
    error = "error"
    warn = "warn"
    info = "info"


class MetricsAction(str, Enum):
    search = "search"
    label_values = "label_values"
    query = "query"


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class FluxStatusRequest(BaseModel):
    resource_type: FluxResourceType = Field(description="Type of Flux resource")
    name: Optional[str] = Field(default=None, description="Specific resource name")
    namespace: Optional[str] = Field(default=None, description="Kubernetes namespace")


class FluxLogsRequest(BaseModel):
    level: LogLevel = LogLevel.error
    since: Optional[str] = Field(default=None, description="Duration like '5m' or '1h'")
    limit: int = Field(default=50, ge=1, description="Max lines to return")


class FluxReconcileRequest(BaseModel):
    resource_type: ReconcileResourceType
    name: str
    namespace: Optional[str] = None
    with_source: bool = True


class TalosNodesRequest(BaseModel):
    node: Optional[str] = Field(
        default=None, description="Node name or IP (omit for all nodes)",
    )


class TalosLogsRequest(BaseModel):
    node: str = Field(description="Node name or IP")
    service: str = Field(
        description="Service name: kubelet, etcd, controller-runtime, etc.",
    )
    since: Optional[str] = None
    limit: int = Field(default=100, ge=1)


class PodLogsRequest(BaseModel):
    namespace: str
    pod_name: Optional[str] = None
    label: Optional[str] = None
    deployment: Optional[str] = None
    container: Optional[str] = None
    since: Optional[str] = None
    limit: int = Field(default=100, ge=0)
    previous: bool = False


class HelmReleaseDebugRequest(BaseModel):
    name: str
    namespace: str
    show_values: bool = False


class GrafanaMetricsRequest(BaseModel):
    action: MetricsAction
    pattern: Optional[str] = Field(default=None, description="Regex filter for search")
    label: Optional[str] = Field(default=None, description="Label for label_values")
    query: Optional[str] = Field(default=None, description="PromQL for query")
    limit: int = Field(default=100, ge=1)


# ---------------------------------------------------------------------------
# Payloads (camelCase on the wire)
# ---------------------------------------------------------------------------


class Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class NodeSummary(Payload):
    name: str
    status: str
    version: str
    roles: str


class ReadySummary(Payload):
    namespace: str
    name: str
    ready: str
    message: str = ""


class ProblemPod(Payload):
    namespace: str
    name: str
    status: str
    restarts: int = 0
    age: str = ""


class PVCIssue(Payload):
    namespace: str
    name: str
    status: str
    storage_class: str = ""


class ClusterHealth(Payload):
    nodes: list[NodeSummary] = []
    kustomizations: list[ReadySummary] = []
    problem_pods: list[ProblemPod] = []
    helm_releases: list[ReadySummary] = []
    pvc_issues: list[PVCIssue] = []


class ConditionSummary(Payload):
    type: str
    status: str
    reason: str = ""
    message: str = ""
    age: str = ""


class EventSummary(Payload):
    age: str = ""
    type: str = ""
    reason: str = ""
    message: str = ""


class FluxResourceDetail(Payload):
    type: str
    name: str
    namespace: str
    revision: str = ""
    conditions: list[ConditionSummary] = []
    events: list[EventSummary] = []


class FluxResourceListing(Payload):
    kustomizations: Optional[list[ReadySummary]] = None
    helm_releases: Optional[list[ReadySummary]] = None


class LogLines(Payload):
    lines: list[str] = []


class ReconcileResult(Payload):
    output: str


class TalosService(Payload):
    service: str = ""
    state: str = ""
    health: str = ""
    last_change: str = ""


class TalosNode(Payload):
    name: str
    ip: str = ""
    roles: str = ""
    talos_version: str = ""
    services: list[TalosService] = []


class TalosNodes(Payload):
    nodes: list[TalosNode] = []


class TalosLogs(Payload):
    node: str
    service: str
    lines: list[str] = []


class ReadyState(Payload):
    status: str = "Unknown"
    message: str = ""


class HelmReleaseDebug(Payload):
    name: str
    namespace: str
    chart: str = "unknown"
    chart_version: str = ""
    source_ref: str = ""
    revision: str = ""
    ready: ReadyState = ReadyState()
    conditions: list[ConditionSummary] = []
    events: list[EventSummary] = []
    values: Optional[str] = None


class MetricsSearch(Payload):
    action: str = "search"
    count: int
    metrics: list[str] = []


class LabelValues(Payload):
    action: str = "label_values"
    label: str
    count: int
    values: list[str] = []


class QueryResult(Payload):
    action: str = "query"
    query: str
    count: int
    result: list[Any] = []
