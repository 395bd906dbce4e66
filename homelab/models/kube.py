"""Typed views of the Kubernetes / Flux JSON documents we read.

Only the fields the tools use are modelled.  Anything the API server may
omit is optional or defaulted; unknown fields are ignored.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ROLE_LABEL_PREFIX = "node-role.kubernetes.io/"


class KubeModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class ObjectMeta(KubeModel):
    name: str = ""
    namespace: str = ""
    labels: dict[str, str] = Field(default_factory=dict)
    creation_timestamp: Optional[str] = None


class Condition(KubeModel):
    type: str = ""
    status: str = "Unknown"
    reason: Optional[str] = None
    message: Optional[str] = None
    last_transition_time: Optional[str] = None


def find_condition(conditions: list[Condition], type_: str) -> Optional[Condition]:
    for cond in conditions:
        if cond.type == type_:
            return cond
    return None


# ---------------------------------------------------------------------------
# Nodes
# ---------------------------------------------------------------------------


class NodeAddress(KubeModel):
    type: str = ""
    address: str = ""


class NodeSystemInfo(KubeModel):
    kubelet_version: str = ""


class NodeStatus(KubeModel):
    conditions: list[Condition] = Field(default_factory=list)
    addresses: list[NodeAddress] = Field(default_factory=list)
    node_info: NodeSystemInfo = Field(default_factory=NodeSystemInfo)


class Node(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: NodeStatus = Field(default_factory=NodeStatus)

    @property
    def roles(self) -> str:
        roles = [
            label[len(ROLE_LABEL_PREFIX):]
            for label in self.metadata.labels
            if label.startswith(ROLE_LABEL_PREFIX)
        ]
        return ", ".join(roles) or "worker"

    @property
    def internal_ip(self) -> str:
        for addr in self.status.addresses:
            if addr.type == "InternalIP":
                return addr.address
        return ""

    def matches(self, name_or_ip: str) -> bool:
        return self.metadata.name == name_or_ip or any(
            a.address == name_or_ip for a in self.status.addresses
        )


class NodeList(KubeModel):
    items: list[Node] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Pods / PVCs / Deployments
# ---------------------------------------------------------------------------


class ContainerStatus(KubeModel):
    name: str = ""
    restart_count: int = 0
    state: dict[str, Any] = Field(default_factory=dict)


class PodStatus(KubeModel):
    phase: str = "Unknown"
    container_statuses: Optional[list[ContainerStatus]] = None


class Pod(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: PodStatus = Field(default_factory=PodStatus)

    @property
    def restarts(self) -> int:
        return sum(c.restart_count for c in self.status.container_statuses or [])


class PodList(KubeModel):
    items: list[Pod] = Field(default_factory=list)


class PVCSpec(KubeModel):
    storage_class_name: Optional[str] = None


class PVCStatus(KubeModel):
    phase: str = "Unknown"


class PersistentVolumeClaim(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: PVCSpec = Field(default_factory=PVCSpec)
    status: PVCStatus = Field(default_factory=PVCStatus)


class PVCList(KubeModel):
    items: list[PersistentVolumeClaim] = Field(default_factory=list)


class LabelSelector(KubeModel):
    match_labels: dict[str, str] = Field(default_factory=dict)


class DeploymentSpec(KubeModel):
    selector: LabelSelector = Field(default_factory=LabelSelector)


class Deployment(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    spec: DeploymentSpec = Field(default_factory=DeploymentSpec)

    @property
    def label_selector(self) -> str:
        return ",".join(f"{k}={v}" for k, v in self.spec.selector.match_labels.items())


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class Event(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    type: str = ""
    reason: str = ""
    message: str = ""
    last_timestamp: Optional[str] = None


class EventList(KubeModel):
    items: list[Event] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Flux
# ---------------------------------------------------------------------------


class FluxStatus(KubeModel):
    conditions: list[Condition] = Field(default_factory=list)
    last_applied_revision: Optional[str] = None
    last_attempted_revision: Optional[str] = None


class FluxResource(KubeModel):
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)
    status: FluxStatus = Field(default_factory=FluxStatus)

    @property
    def ready(self) -> Optional[Condition]:
        return find_condition(self.status.conditions, "Ready")


class FluxResourceList(KubeModel):
    items: list[FluxResource] = Field(default_factory=list)


class SourceRef(KubeModel):
    name: str = ""
    kind: str = ""


class ChartTemplateSpec(KubeModel):
    chart: Optional[str] = None
    version: Optional[str] = None
    source_ref: Optional[SourceRef] = None


class ChartTemplate(KubeModel):
    spec: Optional[ChartTemplateSpec] = None


class HelmReleaseSpec(KubeModel):
    chart: Optional[ChartTemplate] = None
    values: Optional[dict[str, Any]] = None


class HelmRelease(FluxResource):
    spec: HelmReleaseSpec = Field(default_factory=HelmReleaseSpec)

    @property
    def chart_spec(self) -> ChartTemplateSpec:
        if self.spec.chart and self.spec.chart.spec:
            return self.spec.chart.spec
        return ChartTemplateSpec()
