"""Deep dive on a HelmRelease: conditions, events, values."""

from __future__ import annotations

from homelab.errors import HomelabError
from homelab.models.kube import EventList, HelmRelease
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import HelmReleaseDebug, HelmReleaseDebugRequest, ReadyState
from homelab.services import cli
from homelab.services.aggregator import (
    AggregationPolicy,
    AggregationUnit,
    Aggregator,
    aggregator,
)
from homelab.services.tools.flux import condition_summaries, event_summaries
from homelab.utils.cli_parser import JsonShape, decode_text, json_decoder
from homelab.utils.logging import get_logger

log = get_logger(__name__)

VALUES_UNAVAILABLE = "Could not retrieve values"


async def helmrelease_debug(
    req: HelmReleaseDebugRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    units = [
        AggregationUnit(
            key="helmrelease",
            spec=cli.kubectl_json(
                "get", f"helmrelease.helm.toolkit.fluxcd.io/{req.name}",
                "-n", req.namespace,
            ),
            decoder=json_decoder(HelmRelease, JsonShape.object),
        ),
        AggregationUnit(
            key="events",
            spec=cli.kubectl_events(req.name, req.namespace),
            decoder=json_decoder(EventList, JsonShape.items),
        ),
    ]
    if req.show_values:
        units.append(AggregationUnit(
            key="values",
            spec=cli.flux(
                "debug", "helmrelease", req.name, "-n", req.namespace, "--show-values",
            ),
            decoder=decode_text,
            required=False,
            default=VALUES_UNAVAILABLE,
        ))

    try:
        result = await _agg.aggregate(units, AggregationPolicy.all_or_nothing)
    except HomelabError as exc:
        return err(f"Error debugging HelmRelease: {exc.message}")

    hr: HelmRelease = result.outcomes["helmrelease"]
    chart = hr.chart_spec
    chart_name = chart.chart or "unknown"
    ready = hr.ready

    debug = HelmReleaseDebug(
        name=req.name,
        namespace=req.namespace,
        chart=chart_name,
        chart_version=chart.version or "",
        source_ref=f"{chart.source_ref.name}/{chart_name}" if chart.source_ref else "",
        revision=(
            hr.status.last_applied_revision
            or hr.status.last_attempted_revision
            or ""
        ),
        ready=ReadyState(
            status=ready.status if ready else "Unknown",
            message=(ready.message or "") if ready else "",
        ),
        conditions=condition_summaries(hr.status.conditions),
        events=event_summaries(result.outcomes["events"]),
    )
    if req.show_values:
        debug.values = result.outcomes["values"] or ""

    log.info("helmrelease.debug", name=req.name, namespace=req.namespace)
    return ok(debug)
