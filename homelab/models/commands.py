"""Command-related data structures."""

from __future__ import annotations

import shlex
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from homelab.errors import ErrorKind, FailureReason


class CommandSpec(BaseModel):
    """One external invocation: program, argv, and its limits."""

    model_config = ConfigDict(frozen=True)

    program: str
    arguments: tuple[str, ...] = ()
    timeout: float = Field(default=30.0, gt=0, description="Seconds")
    max_output_bytes: int = Field(default=10 * 1024 * 1024, gt=0)

    @property
    def display(self) -> str:
        return shlex.join([self.program, *self.arguments])


# ---------------------------------------------------------------------------
# Outcome variants (discriminated on ``kind``)
# ---------------------------------------------------------------------------


class Success(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return ""


class SuccessWithDiagnostics(BaseModel):
    """Nonzero exit, but the tool still wrote usable stdout."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success_with_diagnostics"] = "success_with_diagnostics"
    stdout: str
    stderr: str = ""
    exit_code: int

    @property
    def ok(self) -> bool:
        return True

    @property
    def message(self) -> str:
        return self.stderr.strip()


class Timeout(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["timeout"] = "timeout"
    elapsed: float
    command: str = ""
    limit: float = 0.0

    @property
    def ok(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return f"Command timed out after {int(self.limit * 1000)}ms: {self.command}"

    @property
    def reason(self) -> FailureReason:
        return FailureReason(kind=ErrorKind.timeout, message=self.message)


class Failure(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    reason_kind: ErrorKind
    message: str
    stderr: str = ""
    exit_code: Optional[int] = None

    @property
    def ok(self) -> bool:
        return False

    @property
    def reason(self) -> FailureReason:
        return FailureReason(kind=self.reason_kind, message=self.message)


CommandOutcome = Annotated[
    Union[Success, SuccessWithDiagnostics, Timeout, Failure],
    Field(discriminator="kind"),
]
