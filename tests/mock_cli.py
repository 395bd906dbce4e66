"""Mock command runner for testing without a cluster.

Provides canned kubectl / flux / talosctl outputs keyed by command line.
"""

from __future__ import annotations

import json

from homelab.errors import ErrorKind
from homelab.models.commands import (
    CommandSpec,
    Failure,
    Success,
    SuccessWithDiagnostics,
    Timeout,
)

# ── Canned kubectl outputs ───────────────────────────────────────────────

NODES = {
    "items": [
        {
            "metadata": {
                "name": "cp-1",
                "labels": {"node-role.kubernetes.io/control-plane": ""},
            },
            "status": {
                "conditions": [{"type": "Ready", "status": "True"}],
                "addresses": [
                    {"type": "InternalIP", "address": "10.0.0.11"},
                    {"type": "Hostname", "address": "cp-1"},
                ],
                "nodeInfo": {"kubeletVersion": "v1.30.1"},
            },
        },
        {
            "metadata": {"name": "worker-1", "labels": {}},
            "status": {
                "conditions": [{"type": "Ready", "status": "False"}],
                "addresses": [{"type": "Hostname", "address": "worker-1"}],
                "nodeInfo": {"kubeletVersion": "v1.30.1"},
            },
        },
        {
            "metadata": {"name": "worker-2", "labels": {}},
            "status": {
                "conditions": [{"type": "Ready", "status": "True"}],
                "addresses": [{"type": "InternalIP", "address": "10.0.0.13"}],
                "nodeInfo": {"kubeletVersion": "v1.30.1"},
            },
        },
    ],
}

KUSTOMIZATIONS = {
    "items": [
        {
            "metadata": {"name": "apps", "namespace": "flux-system"},
            "status": {
                "conditions": [{
                    "type": "Ready",
                    "status": "True",
                    "reason": "ReconciliationSucceeded",
                    "message": "Applied revision: main@sha1:abc123",
                    "lastTransitionTime": "2024-05-01T10:00:00Z",
                }],
                "lastAppliedRevision": "main@sha1:abc123",
            },
        },
        {
            "metadata": {"name": "infra", "namespace": "flux-system"},
        },
    ],
}

HELMRELEASES = {
    "items": [
        {
            "metadata": {"name": "grafana", "namespace": "monitoring"},
            "status": {
                "conditions": [{
                    "type": "Ready",
                    "status": "False",
                    "message": "install retries exhausted",
                }],
            },
        },
    ],
}

PODS = {
    "items": [
        {
            "metadata": {
                "name": "api-7f9c", "namespace": "default",
                "creationTimestamp": "2024-05-01T10:00:00Z",
            },
            "status": {"phase": "Running"},
        },
        {
            "metadata": {
                "name": "job-1", "namespace": "batch",
                "creationTimestamp": "2024-05-01T10:00:00Z",
            },
            "status": {"phase": "Succeeded"},
        },
        {
            "metadata": {
                "name": "broken-5d8", "namespace": "default",
                "creationTimestamp": "2024-05-01T10:00:00Z",
            },
            "status": {
                "phase": "Pending",
                "containerStatuses": [
                    {"name": "app", "restartCount": 3, "state": {}},
                    {"name": "sidecar", "restartCount": 2, "state": {}},
                ],
            },
        },
    ],
}

PVCS = {
    "items": [
        {
            "metadata": {"name": "data-0", "namespace": "db"},
            "spec": {"storageClassName": "longhorn"},
            "status": {"phase": "Bound"},
        },
        {
            "metadata": {"name": "cache", "namespace": "default"},
            "spec": {},
            "status": {"phase": "Pending"},
        },
    ],
}

EVENTS = {
    "items": [
        {
            "metadata": {"creationTimestamp": "2024-05-01T10:00:00Z"},
            "type": "Normal" if i % 2 else "Warning",
            "reason": f"Reason{i}",
            "message": f"event {i}",
            "lastTimestamp": "2024-05-01T10:00:00Z",
        }
        for i in range(12)
    ],
}

HELMRELEASE = {
    "metadata": {"name": "grafana", "namespace": "monitoring"},
    "spec": {
        "chart": {
            "spec": {
                "chart": "grafana",
                "version": "7.3.0",
                "sourceRef": {"kind": "HelmRepository", "name": "grafana-charts"},
            },
        },
    },
    "status": {
        "conditions": [
            {
                "type": "Ready",
                "status": "False",
                "reason": "InstallFailed",
                "message": "install retries exhausted",
            },
            {"type": "Released", "status": "False"},
        ],
        "lastAttemptedRevision": "7.3.0",
    },
}

DEPLOYMENT = {
    "metadata": {"name": "api", "namespace": "default"},
    "spec": {"selector": {"matchLabels": {"app": "api", "tier": "web"}}},
}

# ── Canned flux / talosctl outputs ───────────────────────────────────────

FLUX_LOGS = """\
2024-05-01T10:00:00.000Z error HelmRelease/grafana.monitoring - install retries exhausted
2024-05-01T10:01:00.000Z error Kustomization/apps.flux-system - health check failed

2024-05-01T10:02:00.000Z error Kustomization/infra.flux-system - dependency not ready
"""

TALOS_VERSION = """\
Client:
	Tag:         v1.7.4
Server:
	NODE:        10.0.0.11
	Tag:         v1.7.4
"""

TALOS_SERVICES = """\
SERVICE      STATE     HEALTH   LAST CHANGE   LAST EVENT
apid         Running   OK       2h1m ago      Health check successful
etcd         Running   OK       2h1m ago      Health check successful
kubelet      Running   OK       2h0m ago      Health check successful
"""

TALOS_SERVICES_SHORT = """\
SERVICE   STATE     HEALTH   LAST CHANGE
etcd   Running   OK

kubelet   Running   OK   5m ago
"""

TALOS_LOGS = "\n".join(f"10.0.0.11: kubelet line {i}" for i in range(20)) + "\n"

POD_LOGS = "starting\nlistening on :8080\n\nready\n"

MIMIR_NAMES = {
    "status": "success",
    "data": ["up", "node_cpu_seconds_total", "node_memory_MemFree_bytes", "kube_pod_info"],
}

MIMIR_QUERY = {
    "status": "success",
    "data": {
        "resultType": "vector",
        "result": [
            {"metric": {"__name__": "up", "job": "a"}, "value": [1714557600, "1"]},
            {"metric": {"__name__": "up", "job": "b"}, "value": [1714557600, "0"]},
        ],
    },
}

MIMIR_BASE = "/api/v1/namespaces/monitoring/services/http:mimir-nginx:80/proxy/prometheus"

FLUX_KS = "kustomizations.kustomize.toolkit.fluxcd.io"
FLUX_HR = "helmreleases.helm.toolkit.fluxcd.io"
EVENTS_GRAFANA = (
    "kubectl get events --field-selector involvedObject.name=grafana "
    "-n monitoring --sort-by=.lastTimestamp -o json"
)


# ── Canned response map ──────────────────────────────────────────────────

_CANNED: dict[str, str] = {
    "kubectl get nodes -o json": json.dumps(NODES),
    f"kubectl get {FLUX_KS} -A -o json": json.dumps(KUSTOMIZATIONS),
    f"kubectl get {FLUX_KS} -n flux-system -o json": json.dumps(KUSTOMIZATIONS),
    f"kubectl get {FLUX_HR} -A -o json": json.dumps(HELMRELEASES),
    "kubectl get pods -A -o json": json.dumps(PODS),
    "kubectl get pvc -A -o json": json.dumps(PVCS),
    EVENTS_GRAFANA: json.dumps(EVENTS),
    (
        "kubectl get events --field-selector involvedObject.name=apps "
        "-n flux-system --sort-by=.lastTimestamp -o json"
    ): json.dumps(EVENTS),
    (
        "kubectl get helmrelease.helm.toolkit.fluxcd.io/grafana "
        "-n monitoring -o json"
    ): json.dumps(HELMRELEASE),
    "kubectl get deployment api -n default -o json": json.dumps(DEPLOYMENT),
    "kubectl logs -n default -l app=api,tier=web --tail=100": POD_LOGS,
    "kubectl logs -n default api-7f9c --tail=100": POD_LOGS,
    f"kubectl get --raw {MIMIR_BASE}/api/v1/label/__name__/values": json.dumps(MIMIR_NAMES),
    f"kubectl get --raw {MIMIR_BASE}/api/v1/query?query=up": json.dumps(MIMIR_QUERY),
    "flux logs --level=error": FLUX_LOGS,
    "flux debug helmrelease grafana -n monitoring --show-values": "replicas: 2\n",
    "talosctl -n 10.0.0.11 version --short": TALOS_VERSION,
    "talosctl -n 10.0.0.13 version --short": TALOS_VERSION,
    "talosctl -n 10.0.0.11 service": TALOS_SERVICES,
    "talosctl -n 10.0.0.13 service": TALOS_SERVICES_SHORT,
    "talosctl -n 10.0.0.11 logs kubelet": TALOS_LOGS,
}


def command_line(spec: CommandSpec) -> str:
    return " ".join([spec.program, *spec.arguments])


# ── Mock runner ──────────────────────────────────────────────────────────


class MockRunner:
    """Drop-in replacement for CommandRunner using canned outputs.

    Unknown commands fail the way a missing resource would (nonzero exit,
    empty stdout).
    """

    def __init__(self) -> None:
        self.calls: list[str] = []
        self._extra: dict[str, object] = {}

    def add_response(self, command: str, output: str) -> None:
        """Add or override a canned stdout."""
        self._extra[command] = Success(stdout=output)

    def add_outcome(self, command: str, outcome: object) -> None:
        """Return a specific outcome (Failure, Timeout, ...) for *command*."""
        self._extra[command] = outcome

    def fail(self, command: str, stderr: str = "Error from server (NotFound)") -> None:
        self._extra[command] = Failure(
            reason_kind=ErrorKind.non_zero_exit,
            message=f"Command failed: {command}\n{stderr}",
            stderr=stderr,
            exit_code=1,
        )

    def timeout(self, command: str, limit: float = 30.0) -> None:
        self._extra[command] = Timeout(elapsed=limit, command=command, limit=limit)

    async def run(self, spec: CommandSpec):
        line = command_line(spec)
        self.calls.append(line)
        if line in self._extra:
            return self._extra[line]
        if line in _CANNED:
            return Success(stdout=_CANNED[line])
        return Failure(
            reason_kind=ErrorKind.non_zero_exit,
            message=f"Command failed: {line}\nerror: the server doesn't have a resource type",
            stderr="error: the server doesn't have a resource type",
            exit_code=1,
        )


def diagnostics(stdout: str, stderr: str = "warning: deprecated flag") -> SuccessWithDiagnostics:
    return SuccessWithDiagnostics(stdout=stdout, stderr=stderr, exit_code=1)
