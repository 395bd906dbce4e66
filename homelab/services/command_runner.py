"""Bounded execution of external CLIs (kubectl, flux, talosctl).

Each call owns its subprocess, pipes and timer.  Command-level problems are
returned as outcome variants; ``run`` itself does not raise for them.
"""

from __future__ import annotations

import asyncio
import time
from typing import Optional, Union

from homelab.errors import ErrorKind
from homelab.models.commands import (
    CommandSpec,
    Failure,
    Success,
    SuccessWithDiagnostics,
    Timeout,
)
from homelab.utils.logging import get_logger

log = get_logger(__name__)

_CHUNK = 64 * 1024

Outcome = Union[Success, SuccessWithDiagnostics, Timeout, Failure]


class _OutputLimitExceeded(Exception):
    pass


class _OutputBudget:
    """Byte budget shared by the stdout and stderr readers of one process."""

    def __init__(self, limit: int) -> None:
        self.limit = limit
        self.used = 0

    def consume(self, n: int) -> None:
        self.used += n
        if self.used > self.limit:
            raise _OutputLimitExceeded()


class CommandRunner:
    """Runs one :class:`CommandSpec` and classifies how it ended."""

    async def run(self, spec: CommandSpec) -> Outcome:
        started = time.monotonic()
        log.debug("command.run", command=spec.display, timeout=spec.timeout)

        try:
            proc = await asyncio.create_subprocess_exec(
                spec.program, *spec.arguments,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            # ValueError: argv the OS cannot accept (embedded NUL).
            log.warning("command.spawn_failed", command=spec.display, error=str(exc))
            return Failure(
                reason_kind=ErrorKind.spawn_failure,
                message=f"Command failed: {spec.display}\n{exc}",
            )

        budget = _OutputBudget(spec.max_output_bytes)
        try:
            out, err = await asyncio.wait_for(
                self._collect(proc, budget), timeout=spec.timeout,
            )
        except asyncio.TimeoutError:
            await _kill(proc)
            elapsed = time.monotonic() - started
            log.warning("command.timeout", command=spec.display, elapsed=round(elapsed, 3))
            return Timeout(elapsed=elapsed, command=spec.display, limit=spec.timeout)
        except _OutputLimitExceeded:
            await _kill(proc)
            log.warning(
                "command.output_too_large",
                command=spec.display, limit=spec.max_output_bytes,
            )
            return Failure(
                reason_kind=ErrorKind.output_too_large,
                message=(
                    f"Command output exceeded {spec.max_output_bytes} bytes: "
                    f"{spec.display}"
                ),
            )

        stdout = out.decode(errors="replace")
        stderr = err.decode(errors="replace")
        rc = proc.returncode
        elapsed = time.monotonic() - started

        if rc == 0:
            log.debug("command.ok", command=spec.display, elapsed=round(elapsed, 3))
            return Success(stdout=stdout, stderr=stderr)

        # Many infra CLIs exit nonzero while still printing a usable result.
        if stdout:
            log.info(
                "command.diagnostics",
                command=spec.display, rc=rc, stderr=stderr[:200],
            )
            return SuccessWithDiagnostics(stdout=stdout, stderr=stderr, exit_code=rc)

        log.warning("command.failed", command=spec.display, rc=rc, stderr=stderr[:200])
        return Failure(
            reason_kind=ErrorKind.non_zero_exit,
            message=f"Command failed: {spec.display}\n{stderr or f'exit status {rc}'}",
            stderr=stderr,
            exit_code=rc,
        )

    # ── helpers ───────────────────────────────────────────────────────

    async def _collect(
        self,
        proc: asyncio.subprocess.Process,
        budget: _OutputBudget,
    ) -> tuple[bytes, bytes]:
        readers = [
            asyncio.ensure_future(_drain(proc.stdout, budget)),
            asyncio.ensure_future(_drain(proc.stderr, budget)),
        ]
        try:
            out, err = await asyncio.gather(*readers)
            await proc.wait()
        finally:
            for task in readers:
                task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
        return out, err


async def _drain(
    stream: Optional[asyncio.StreamReader],
    budget: _OutputBudget,
) -> bytes:
    if stream is None:
        return b""
    chunks: list[bytes] = []
    while True:
        chunk = await stream.read(_CHUNK)
        if not chunk:
            break
        budget.consume(len(chunk))
        chunks.append(chunk)
    return b"".join(chunks)


async def _kill(proc: asyncio.subprocess.Process) -> None:
    """Force-kill and reap so no zombie outlives the request."""
    if proc.returncode is None:
        try:
            proc.kill()
        except ProcessLookupError:
            pass
    await proc.wait()


# Singleton
command_runner = CommandRunner()
