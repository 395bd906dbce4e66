"""Aggregated cluster health: nodes, flux, pods, helmreleases, PVCs."""

from __future__ import annotations

from homelab.errors import HomelabError
from homelab.models.kube import (
    FluxResourceList,
    NodeList,
    PodList,
    PVCList,
    find_condition,
)
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import (
    ClusterHealth,
    NodeSummary,
    ProblemPod,
    PVCIssue,
    ReadySummary,
)
from homelab.services import cli
from homelab.services.aggregator import (
    AggregationPolicy,
    AggregationUnit,
    Aggregator,
    aggregator,
)
from homelab.utils.cli_parser import JsonShape, json_decoder
from homelab.utils.logging import get_logger
from homelab.utils.timefmt import ago

log = get_logger(__name__)

_HEALTHY_POD_PHASES = ("Running", "Succeeded")


def ready_summaries(resources: FluxResourceList) -> list[ReadySummary]:
    summaries = []
    for res in resources.items:
        ready = res.ready
        summaries.append(ReadySummary(
            namespace=res.metadata.namespace,
            name=res.metadata.name,
            ready=ready.status if ready else "Unknown",
            message=(ready.message or "") if ready else "",
        ))
    return summaries


async def cluster_health(*, agg: Aggregator | None = None) -> ResponseEnvelope:
    _agg = agg or aggregator
    units = [
        AggregationUnit(
            key="nodes",
            spec=cli.kubectl_json("get", "nodes"),
            decoder=json_decoder(NodeList, JsonShape.items),
        ),
        AggregationUnit(
            key="kustomizations",
            spec=cli.kubectl_get_all(cli.FLUX_KUSTOMIZATION_CRD),
            decoder=json_decoder(FluxResourceList, JsonShape.items),
        ),
        AggregationUnit(
            key="pods",
            spec=cli.kubectl_get_all("pods"),
            decoder=json_decoder(PodList, JsonShape.items),
        ),
        AggregationUnit(
            key="helmreleases",
            spec=cli.kubectl_get_all(cli.FLUX_HELMRELEASE_CRD),
            decoder=json_decoder(FluxResourceList, JsonShape.items),
        ),
        AggregationUnit(
            key="pvcs",
            spec=cli.kubectl_get_all("pvc"),
            decoder=json_decoder(PVCList, JsonShape.items),
        ),
    ]
    try:
        result = await _agg.aggregate(units, AggregationPolicy.all_or_nothing)
    except HomelabError as exc:
        return err(f"Error getting cluster health: {exc.message}")

    nodes: NodeList = result.outcomes["nodes"]
    pods: PodList = result.outcomes["pods"]
    pvcs: PVCList = result.outcomes["pvcs"]

    node_list = []
    for node in nodes.items:
        ready = find_condition(node.status.conditions, "Ready")
        node_list.append(NodeSummary(
            name=node.metadata.name,
            status="Ready" if ready and ready.status == "True" else "NotReady",
            version=node.status.node_info.kubelet_version,
            roles=node.roles,
        ))

    problem_pods = [
        ProblemPod(
            namespace=p.metadata.namespace,
            name=p.metadata.name,
            status=p.status.phase,
            restarts=p.restarts,
            age=ago(p.metadata.creation_timestamp),
        )
        for p in pods.items
        if p.status.phase not in _HEALTHY_POD_PHASES
    ]

    pvc_issues = [
        PVCIssue(
            namespace=p.metadata.namespace,
            name=p.metadata.name,
            status=p.status.phase,
            storage_class=p.spec.storage_class_name or "",
        )
        for p in pvcs.items
        if p.status.phase != "Bound"
    ]

    health = ClusterHealth(
        nodes=node_list,
        kustomizations=ready_summaries(result.outcomes["kustomizations"]),
        problem_pods=problem_pods,
        helm_releases=ready_summaries(result.outcomes["helmreleases"]),
        pvc_issues=pvc_issues,
    )
    log.info(
        "cluster_health.done",
        nodes=len(node_list), problem_pods=len(problem_pods), pvc_issues=len(pvc_issues),
    )
    return ok(health)
