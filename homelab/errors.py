"""Error taxonomy shared by the runner, decoders, aggregator and tools."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class ErrorKind(str, Enum):
    spawn_failure = "SpawnFailure"
    timeout = "Timeout"
    non_zero_exit = "NonZeroExit"
    output_too_large = "OutputTooLarge"
    parse_error = "ParseError"
    not_found = "NotFound"
    validation_error = "ValidationError"


class FailureReason(BaseModel):
    """Why a single command or decode step did not produce a value."""

    kind: ErrorKind
    message: str

    def __str__(self) -> str:
        return self.message


class HomelabError(Exception):
    """Base class for every error a tool translates into ``err(message)``."""

    kind: ErrorKind = ErrorKind.validation_error

    def __init__(self, message: str, *, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        self.message = message
        if kind is not None:
            self.kind = kind

    @property
    def reason(self) -> FailureReason:
        return FailureReason(kind=self.kind, message=self.message)


class ParseError(HomelabError):
    kind = ErrorKind.parse_error


class NotFoundError(HomelabError):
    kind = ErrorKind.not_found


class ValidationError(HomelabError):
    kind = ErrorKind.validation_error


class AggregationError(HomelabError):
    """A required unit failed under the all-or-nothing policy."""

    def __init__(self, key: str, reason: FailureReason) -> None:
        super().__init__(reason.message, kind=reason.kind)
        self.key = key
