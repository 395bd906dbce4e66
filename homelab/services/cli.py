"""Argument vectors for the external CLIs.

Every builder returns an immutable :class:`CommandSpec` carrying the
configured binary, timeout and output limit.
"""

from __future__ import annotations

from homelab.config import Settings, settings
from homelab.models.commands import CommandSpec

FLUX_KUSTOMIZATION_CRD = "kustomizations.kustomize.toolkit.fluxcd.io"
FLUX_HELMRELEASE_CRD = "helmreleases.helm.toolkit.fluxcd.io"


def _spec(program: str, args: list[str], cfg: Settings | None) -> CommandSpec:
    c = cfg or settings
    return CommandSpec(
        program=program,
        arguments=tuple(args),
        timeout=c.command_timeout_seconds,
        max_output_bytes=c.max_output_bytes,
    )


# ── kubectl ───────────────────────────────────────────────────────────────


def kubectl(*args: str, cfg: Settings | None = None) -> CommandSpec:
    return _spec((cfg or settings).kubectl_bin, list(args), cfg)


def kubectl_json(*args: str, cfg: Settings | None = None) -> CommandSpec:
    return kubectl(*args, "-o", "json", cfg=cfg)


def kubectl_get_all(
    resource: str,
    namespace: str | None = None,
    *,
    cfg: Settings | None = None,
) -> CommandSpec:
    """``kubectl get <resource>`` in one namespace, or ``-A`` when none is given."""
    scope = ["-n", namespace] if namespace else ["-A"]
    return kubectl_json("get", resource, *scope, cfg=cfg)


def kubectl_events(
    name: str,
    namespace: str,
    *,
    cfg: Settings | None = None,
) -> CommandSpec:
    return kubectl_json(
        "get", "events",
        "--field-selector", f"involvedObject.name={name}",
        "-n", namespace,
        "--sort-by=.lastTimestamp",
        cfg=cfg,
    )


def kubectl_raw(path: str, *, cfg: Settings | None = None) -> CommandSpec:
    return kubectl("get", "--raw", path, cfg=cfg)


# ── flux ──────────────────────────────────────────────────────────────────


def flux(*args: str, cfg: Settings | None = None) -> CommandSpec:
    return _spec((cfg or settings).flux_bin, list(args), cfg)


# ── talosctl ─────────────────────────────────────────────────────────────


def talosctl(node_ip: str, *args: str, cfg: Settings | None = None) -> CommandSpec:
    return _spec((cfg or settings).talosctl_bin, ["-n", node_ip, *args], cfg)
