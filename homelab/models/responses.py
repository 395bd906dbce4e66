"""Common API response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, model_serializer


class HealthResponse(BaseModel):
    status: str
    version: str


class ToolInfo(BaseModel):
    name: str
    description: str


class ResponseEnvelope(BaseModel):
    """Uniform ``{"ok": ..., "data"|"error": ...}`` shape for every tool call."""

    ok: bool
    data: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, payload: Any) -> ResponseEnvelope:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json", by_alias=True, exclude_none=True)
        return cls(ok=True, data=payload)

    @classmethod
    def failure(cls, message: str) -> ResponseEnvelope:
        return cls(ok=False, error=message)

    @model_serializer
    def _wire(self) -> dict[str, Any]:
        if self.ok:
            return {"ok": True, "data": self.data}
        return {"ok": False, "error": self.error or ""}


def ok(payload: Any) -> ResponseEnvelope:
    return ResponseEnvelope.success(payload)


def err(message: str) -> ResponseEnvelope:
    return ResponseEnvelope.failure(message)
