"""Pod logs by name, label selector, or deployment."""

from __future__ import annotations

from homelab.errors import HomelabError, ValidationError
from homelab.models.kube import Deployment
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import LogLines, PodLogsRequest
from homelab.services import cli
from homelab.services.aggregator import AggregationUnit, Aggregator, aggregator
from homelab.utils.cli_parser import JsonShape, decode_lines, json_decoder
from homelab.utils.logging import get_logger

log = get_logger(__name__)


async def resolve_selector(agg: Aggregator, req: PodLogsRequest) -> str | None:
    """Label selector to use, deriving one from the deployment when needed."""
    if req.deployment and not req.label and not req.pod_name:
        dep: Deployment = await agg.fetch(AggregationUnit(
            key="deployment",
            spec=cli.kubectl_json("get", "deployment", req.deployment, "-n", req.namespace),
            decoder=json_decoder(Deployment, JsonShape.object),
        ))
        return dep.label_selector or None
    return req.label


async def pod_logs(
    req: PodLogsRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    try:
        selector = await resolve_selector(_agg, req)

        args = ["logs", "-n", req.namespace]
        if req.pod_name:
            args.append(req.pod_name)
        elif selector:
            args += ["-l", selector]
        else:
            raise ValidationError("Must specify pod_name, label, or deployment")

        if req.container:
            args += ["-c", req.container]
        if req.since:
            args.append(f"--since={req.since}")
        if req.limit:
            args.append(f"--tail={req.limit}")
        if req.previous:
            args.append("--previous")

        lines = await _agg.fetch(AggregationUnit(
            key="logs", spec=cli.kubectl(*args), decoder=decode_lines,
        ))
    except HomelabError as exc:
        return err(f"Error getting pod logs: {exc.message}")

    log.debug("pod_logs.done", namespace=req.namespace, lines=len(lines))
    return ok(LogLines(lines=lines))
