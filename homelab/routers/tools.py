"""Tool endpoints.  Every call answers with a ResponseEnvelope."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from homelab.auth import require_api_key
from homelab.models.responses import ResponseEnvelope, ToolInfo
from homelab.models.tools import (
    FluxLogsRequest,
    FluxReconcileRequest,
    FluxStatusRequest,
    GrafanaMetricsRequest,
    HelmReleaseDebugRequest,
    PodLogsRequest,
    TalosLogsRequest,
    TalosNodesRequest,
)
from homelab.services.aggregator import aggregator
from homelab.services.tools.cluster_health import cluster_health
from homelab.services.tools.flux import flux_logs, flux_reconcile, flux_status
from homelab.services.tools.grafana_metrics import grafana_metrics
from homelab.services.tools.helmrelease import helmrelease_debug
from homelab.services.tools.kubernetes import pod_logs
from homelab.services.tools.talos import talos_logs, talos_nodes

router = APIRouter(
    prefix="/tools",
    tags=["tools"],
    dependencies=[Depends(require_api_key)],
)

TOOLS: list[ToolInfo] = [
    ToolInfo(
        name="cluster_health",
        description="Aggregated cluster health: nodes, flux, pods, helmreleases, PVCs",
    ),
    ToolInfo(name="flux_status", description="Status of Flux kustomizations and/or helmreleases"),
    ToolInfo(name="flux_logs", description="Flux controller logs filtered by level"),
    ToolInfo(name="flux_reconcile", description="Trigger reconciliation of a Flux resource"),
    ToolInfo(
        name="talos_nodes",
        description="Talos node status with service health (auto-discovers IPs)",
    ),
    ToolInfo(name="talos_logs", description="Logs from a Talos service on a specific node"),
    ToolInfo(name="pod_logs", description="Kubernetes pod logs by name, label, or deployment"),
    ToolInfo(
        name="helmrelease_debug",
        description="Deep dive on a HelmRelease: conditions, events, values",
    ),
    ToolInfo(
        name="grafana_metrics",
        description="Search metric names, list label values, or run an instant query",
    ),
]


@router.get("", response_model=list[ToolInfo])
async def list_tools() -> list[ToolInfo]:
    """List the available tools."""
    return TOOLS


@router.post("/cluster_health", response_model=ResponseEnvelope)
async def run_cluster_health() -> ResponseEnvelope:
    return await cluster_health(agg=aggregator)


@router.post("/flux_status", response_model=ResponseEnvelope)
async def run_flux_status(req: FluxStatusRequest) -> ResponseEnvelope:
    return await flux_status(req, agg=aggregator)


@router.post("/flux_logs", response_model=ResponseEnvelope)
async def run_flux_logs(req: FluxLogsRequest) -> ResponseEnvelope:
    return await flux_logs(req, agg=aggregator)


@router.post("/flux_reconcile", response_model=ResponseEnvelope)
async def run_flux_reconcile(req: FluxReconcileRequest) -> ResponseEnvelope:
    return await flux_reconcile(req, agg=aggregator)


@router.post("/talos_nodes", response_model=ResponseEnvelope)
async def run_talos_nodes(req: TalosNodesRequest) -> ResponseEnvelope:
    return await talos_nodes(req, agg=aggregator)


@router.post("/talos_logs", response_model=ResponseEnvelope)
async def run_talos_logs(req: TalosLogsRequest) -> ResponseEnvelope:
    return await talos_logs(req, agg=aggregator)


@router.post("/pod_logs", response_model=ResponseEnvelope)
async def run_pod_logs(req: PodLogsRequest) -> ResponseEnvelope:
    return await pod_logs(req, agg=aggregator)


@router.post("/helmrelease_debug", response_model=ResponseEnvelope)
async def run_helmrelease_debug(req: HelmReleaseDebugRequest) -> ResponseEnvelope:
    return await helmrelease_debug(req, agg=aggregator)


@router.post("/grafana_metrics", response_model=ResponseEnvelope)
async def run_grafana_metrics(req: GrafanaMetricsRequest) -> ResponseEnvelope:
    return await grafana_metrics(req, agg=aggregator)
