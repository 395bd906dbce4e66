"""Metric discovery and instant queries against Mimir via the API proxy."""

from __future__ import annotations

import re
from typing import Any, Optional
from urllib.parse import quote

from pydantic import BaseModel

from homelab.config import Settings, settings
from homelab.errors import HomelabError, ParseError, ValidationError
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import (
    GrafanaMetricsRequest,
    LabelValues,
    MetricsAction,
    MetricsSearch,
    QueryResult,
)
from homelab.services import cli
from homelab.services.aggregator import AggregationUnit, Aggregator, aggregator
from homelab.utils.cli_parser import JsonShape, json_decoder
from homelab.utils.logging import get_logger

log = get_logger(__name__)


class MimirResponse(BaseModel):
    status: str = ""
    data: Any = None
    error: Optional[str] = None


def _uri_component(value: str) -> str:
    return quote(value, safe="!~*'()")


def _mimir_data(output: str) -> Any:
    resp: MimirResponse = json_decoder(MimirResponse, JsonShape.object)(output)
    if resp.status != "success":
        raise ParseError(resp.error or "Mimir returned non-success status")
    return resp.data


async def mimir_query(
    agg: Aggregator,
    path: str,
    cfg: Settings | None = None,
) -> Any:
    base = (cfg or settings).mimir_proxy_base
    return await agg.fetch(AggregationUnit(
        key="mimir",
        spec=cli.kubectl_raw(f"{base}{path}", cfg=cfg),
        decoder=_mimir_data,
    ))


def _string_list(data: Any) -> list[str]:
    if not isinstance(data, list):
        raise ParseError("Unexpected label values response from Mimir")
    return [str(v) for v in data]


def compile_pattern(pattern: str | None) -> re.Pattern[str] | None:
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise ParseError(f"Invalid regex pattern: {pattern}") from exc


async def grafana_metrics(
    req: GrafanaMetricsRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    try:
        if req.action is MetricsAction.search:
            regex = compile_pattern(req.pattern)
            names = _string_list(
                await mimir_query(_agg, "/api/v1/label/__name__/values"),
            )
            if regex is not None:
                names = [n for n in names if regex.search(n)]
            return ok(MetricsSearch(count=len(names), metrics=names[:req.limit]))

        if req.action is MetricsAction.label_values:
            if not req.label:
                raise ValidationError("label is required for label_values action")
            values = _string_list(await mimir_query(
                _agg, f"/api/v1/label/{_uri_component(req.label)}/values",
            ))
            return ok(LabelValues(
                label=req.label, count=len(values), values=values[:req.limit],
            ))

        if not req.query:
            raise ValidationError("query is required for query action")
        data = await mimir_query(_agg, f"/api/v1/query?query={_uri_component(req.query)}")
        if not isinstance(data, dict) or not isinstance(data.get("result", []), list):
            raise ParseError("Unexpected query response from Mimir")
        result = data.get("result", [])
        return ok(QueryResult(
            query=req.query, count=len(result), result=result[:req.limit],
        ))
    except HomelabError as exc:
        log.info("grafana_metrics.failed", action=req.action.value, error=exc.message)
        return err(f"grafana_metrics failed: {exc.message}")
