"""Flux status, controller logs and reconciliation."""

from __future__ import annotations

from homelab.config import settings
from homelab.errors import HomelabError, NotFoundError
from homelab.models.kube import Condition, EventList, FluxResourceList
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import (
    ConditionSummary,
    EventSummary,
    FluxLogsRequest,
    FluxReconcileRequest,
    FluxResourceDetail,
    FluxResourceListing,
    FluxResourceType,
    FluxStatusRequest,
    LogLines,
    ReconcileResult,
)
from homelab.services import cli
from homelab.services.aggregator import (
    AggregationPolicy,
    AggregationUnit,
    Aggregator,
    aggregator,
)
from homelab.services.tools.cluster_health import ready_summaries
from homelab.utils.cli_parser import JsonShape, decode_lines, json_decoder
from homelab.utils.logging import get_logger
from homelab.utils.timefmt import ago

log = get_logger(__name__)

# CRD, short type name, listing key
_FLUX_KINDS: dict[FluxResourceType, tuple[str, str, str]] = {
    FluxResourceType.kustomization: (
        cli.FLUX_KUSTOMIZATION_CRD, "kustomization", "kustomizations",
    ),
    FluxResourceType.helmrelease: (
        cli.FLUX_HELMRELEASE_CRD, "helmrelease", "helmReleases",
    ),
}


def _selected_kinds(resource_type: FluxResourceType) -> list[tuple[str, str, str]]:
    if resource_type is FluxResourceType.all:
        return list(_FLUX_KINDS.values())
    return [_FLUX_KINDS[resource_type]]


def condition_summaries(conditions: list[Condition]) -> list[ConditionSummary]:
    return [
        ConditionSummary(
            type=c.type,
            status=c.status,
            reason=c.reason or "",
            message=c.message or "",
            age=ago(c.last_transition_time),
        )
        for c in conditions
    ]


def event_summaries(events: EventList, limit: int | None = None) -> list[EventSummary]:
    """Most recent *limit* events (the list is sorted by lastTimestamp)."""
    n = settings.event_limit if limit is None else limit
    return [
        EventSummary(
            age=ago(e.last_timestamp),
            type=e.type,
            reason=e.reason,
            message=e.message,
        )
        for e in events.items[-n:]
    ]


# ---------------------------------------------------------------------------
# flux_status
# ---------------------------------------------------------------------------


async def flux_status(
    req: FluxStatusRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    kinds = _selected_kinds(req.resource_type)
    try:
        if req.name and len(kinds) == 1:
            detail = await _single_resource(_agg, req, *kinds[0])
            return ok(detail)
        return ok(await _list_resources(_agg, req, kinds))
    except HomelabError as exc:
        return err(f"Error getting flux status: {exc.message}")


async def _single_resource(
    agg: Aggregator,
    req: FluxStatusRequest,
    crd: str,
    short_type: str,
    _key: str,
) -> FluxResourceDetail:
    listing: FluxResourceList = await agg.fetch(AggregationUnit(
        key=short_type,
        spec=cli.kubectl_get_all(crd, req.namespace),
        decoder=json_decoder(FluxResourceList, JsonShape.items),
    ))
    matches = [i for i in listing.items if i.metadata.name == req.name]
    if not matches:
        raise NotFoundError(f'Resource "{req.name}" not found')
    item = matches[0]

    # Events are best-effort; a failed fetch reads as "no events".
    result = await agg.aggregate(
        [AggregationUnit(
            key="events",
            spec=cli.kubectl_events(item.metadata.name, item.metadata.namespace),
            decoder=json_decoder(EventList, JsonShape.items),
            required=False,
            default=EventList(),
        )],
        AggregationPolicy.all_or_nothing,
    )

    return FluxResourceDetail(
        type=short_type,
        name=item.metadata.name,
        namespace=item.metadata.namespace,
        revision=item.status.last_applied_revision or "",
        conditions=condition_summaries(item.status.conditions),
        events=event_summaries(result.outcomes["events"]),
    )


async def _list_resources(
    agg: Aggregator,
    req: FluxStatusRequest,
    kinds: list[tuple[str, str, str]],
) -> FluxResourceListing:
    units = [
        AggregationUnit(
            key=key,
            spec=cli.kubectl_get_all(crd, req.namespace),
            decoder=json_decoder(FluxResourceList, JsonShape.items),
        )
        for crd, _short, key in kinds
    ]
    result = await agg.aggregate(units, AggregationPolicy.all_or_nothing)

    summaries = {}
    for key, resources in result.outcomes.items():
        items = resources.items
        if req.name:
            items = [i for i in items if i.metadata.name == req.name]
        summaries[key] = ready_summaries(FluxResourceList(items=items))
    return FluxResourceListing(
        kustomizations=summaries.get("kustomizations"),
        helm_releases=summaries.get("helmReleases"),
    )


# ---------------------------------------------------------------------------
# flux_logs
# ---------------------------------------------------------------------------


async def flux_logs(
    req: FluxLogsRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    args = ["logs", f"--level={req.level.value}"]
    if req.since:
        args.append(f"--since={req.since}")
    try:
        lines = await _agg.fetch(AggregationUnit(
            key="logs", spec=cli.flux(*args), decoder=decode_lines,
        ))
    except HomelabError as exc:
        return err(f"Error getting flux logs: {exc.message}")
    return ok(LogLines(lines=lines[:req.limit]))


# ---------------------------------------------------------------------------
# flux_reconcile
# ---------------------------------------------------------------------------


async def flux_reconcile(
    req: FluxReconcileRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    args = ["reconcile", req.resource_type.value, req.name]
    if req.namespace:
        args += ["-n", req.namespace]
    if req.with_source:
        args.append("--with-source")

    spec = cli.flux(*args)
    log.info("flux.reconcile", kind=req.resource_type.value, name=req.name)
    # flux reports progress on stderr, so keep the raw outcome.
    outcome = await _agg.runner.run(spec)
    if not outcome.ok:
        return err(f"Error triggering reconciliation: {outcome.message}")
    output = outcome.stdout or outcome.stderr or "Reconciliation triggered"
    return ok(ReconcileResult(output=output))
