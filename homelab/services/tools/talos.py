"""Talos node status (IPs discovered from the cluster) and service logs."""

from __future__ import annotations

from homelab.errors import HomelabError, NotFoundError
from homelab.models.kube import Node, NodeList
from homelab.models.responses import ResponseEnvelope, err, ok
from homelab.models.tools import (
    TalosLogs,
    TalosLogsRequest,
    TalosNode,
    TalosNodes,
    TalosNodesRequest,
    TalosService,
)
from homelab.services import cli
from homelab.services.aggregator import (
    AggregationPolicy,
    AggregationUnit,
    Aggregator,
    aggregator,
)
from homelab.utils.cli_parser import (
    JsonShape,
    TableRow,
    count_fields,
    decode_lines,
    json_decoder,
    parse_talos_version,
    table_decoder,
)
from homelab.utils.logging import get_logger

log = get_logger(__name__)

SERVICE_COLUMNS = ("service", "state", "health", "last_change")

NO_INTERNAL_IP = "No InternalIP found"
VERSION_UNAVAILABLE = "unknown"


async def resolve_nodes(agg: Aggregator, node: str | None = None) -> list[Node]:
    """List cluster nodes, optionally narrowed to one name or address."""
    nodes: NodeList = await agg.fetch(AggregationUnit(
        key="nodes",
        spec=cli.kubectl_json("get", "nodes"),
        decoder=json_decoder(NodeList, JsonShape.items),
    ))
    if node:
        return [n for n in nodes.items if n.matches(node)]
    return list(nodes.items)


def _services(rows: list[TableRow]) -> list[TalosService]:
    # Rows with fewer than service/state/health are not service entries.
    return [
        TalosService(**row)
        for row in rows
        if count_fields(row) >= 3
    ]


# ---------------------------------------------------------------------------
# talos_nodes
# ---------------------------------------------------------------------------


async def talos_nodes(
    req: TalosNodesRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    try:
        nodes = await resolve_nodes(_agg, req.node)
        if not nodes:
            raise NotFoundError(
                f'Node "{req.node}" not found' if req.node else "No nodes found",
            )

        units: list[AggregationUnit] = []
        for n in nodes:
            ip = n.internal_ip
            if not ip:
                continue
            units.append(AggregationUnit(
                key=f"{n.metadata.name}/version",
                spec=cli.talosctl(ip, "version", "--short"),
                decoder=parse_talos_version,
                required=False,
                default=VERSION_UNAVAILABLE,
            ))
            units.append(AggregationUnit(
                key=f"{n.metadata.name}/services",
                spec=cli.talosctl(ip, "service"),
                decoder=table_decoder(SERVICE_COLUMNS),
                required=False,
                default=[],
            ))
        result = await _agg.aggregate(units, AggregationPolicy.isolate_per_unit)
    except HomelabError as exc:
        return err(f"Error getting Talos node status: {exc.message}")

    node_list: list[TalosNode] = []
    for n in nodes:
        name = n.metadata.name
        ip = n.internal_ip
        if not ip:
            node_list.append(TalosNode(
                name=name, ip="", roles=n.roles,
                talos_version=NO_INTERNAL_IP, services=[],
            ))
            continue
        node_list.append(TalosNode(
            name=name,
            ip=ip,
            roles=n.roles,
            talos_version=result.outcomes[f"{name}/version"],
            services=_services(result.outcomes[f"{name}/services"]),
        ))

    log.info("talos.nodes", count=len(node_list))
    return ok(TalosNodes(nodes=node_list))


# ---------------------------------------------------------------------------
# talos_logs
# ---------------------------------------------------------------------------


async def talos_logs(
    req: TalosLogsRequest,
    *,
    agg: Aggregator | None = None,
) -> ResponseEnvelope:
    _agg = agg or aggregator
    try:
        nodes = await resolve_nodes(_agg, req.node)
        if not nodes:
            raise NotFoundError(f'Node "{req.node}" not found')
        target = nodes[0]

        args = ["logs", req.service]
        if req.since:
            args.append(f"--since={req.since}")
        lines = await _agg.fetch(AggregationUnit(
            key="logs",
            spec=cli.talosctl(target.internal_ip, *args),
            decoder=decode_lines,
        ))
    except HomelabError as exc:
        return err(f"Error getting Talos logs: {exc.message}")

    return ok(TalosLogs(
        node=target.metadata.name,
        service=req.service,
        lines=lines[-req.limit:],
    ))
