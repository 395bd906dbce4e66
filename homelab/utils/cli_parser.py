"""Utilities for decoding kubectl / flux / talosctl output."""

from __future__ import annotations

import json
import re
from enum import Enum
from typing import Any, Callable, Optional, Sequence, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from homelab.errors import ParseError

M = TypeVar("M", bound=BaseModel)

TableRow = dict[str, str]
Decoder = Callable[[str], Any]


# ---------------------------------------------------------------------------
# Strict JSON
# ---------------------------------------------------------------------------


class JsonShape(str, Enum):
    any = "any"
    object = "object"
    items = "items"


def decode_json(output: str, shape: JsonShape = JsonShape.any) -> Any:
    """Parse *output* as one JSON document and check its top-level shape."""
    try:
        doc = json.loads(output)
    except json.JSONDecodeError as exc:
        raise ParseError(f"Invalid JSON output: {exc}") from exc

    if shape is JsonShape.object and not isinstance(doc, dict):
        raise ParseError(
            f"Expected a JSON object, got {type(doc).__name__}",
        )
    if shape is JsonShape.items:
        if not isinstance(doc, dict) or not isinstance(doc.get("items"), list):
            raise ParseError("Expected a JSON object with an 'items' list")
    return doc


def json_decoder(
    model: Optional[type[M]] = None,
    shape: JsonShape = JsonShape.object,
) -> Decoder:
    """Build a decoder that parses JSON and optionally validates into *model*."""

    def _decode(output: str) -> Any:
        doc = decode_json(output, shape)
        if model is None:
            return doc
        try:
            return model.model_validate(doc)
        except PydanticValidationError as exc:
            raise ParseError(
                f"Unexpected {model.__name__} document: "
                f"{exc.error_count()} validation error(s)",
            ) from exc

    return _decode


# ---------------------------------------------------------------------------
# Tolerant whitespace tables
# ---------------------------------------------------------------------------

# Values may contain single spaces ("LAST CHANGE"), so only 2+ split.
_COLUMN_SEP_RE = re.compile(r"\s{2,}")


def split_columns(line: str) -> list[str]:
    """Split one table row on runs of two or more whitespace characters."""
    return _COLUMN_SEP_RE.split(line.strip())


def parse_table(
    output: str,
    columns: Sequence[str],
    *,
    header: bool = True,
) -> list[TableRow]:
    """Map each data row of a status table onto *columns* positionally.

    The first line is treated as a header and dropped when *header* is set.
    Blank rows are skipped.  Missing trailing columns become ``""``.
    """
    lines = output.splitlines()
    if header and lines:
        lines = lines[1:]

    rows: list[TableRow] = []
    for line in lines:
        if not line.strip():
            continue
        fields = split_columns(line)
        rows.append({
            col: fields[i] if i < len(fields) else ""
            for i, col in enumerate(columns)
        })
    return rows


def table_decoder(columns: Sequence[str], *, header: bool = True) -> Decoder:
    cols = tuple(columns)

    def _decode(output: str) -> list[TableRow]:
        return parse_table(output, cols, header=header)

    return _decode


def count_fields(row: TableRow) -> int:
    """Number of leading columns that carried source text."""
    n = 0
    for value in row.values():
        if not value:
            break
        n += 1
    return n


# ---------------------------------------------------------------------------
# Line-oriented output
# ---------------------------------------------------------------------------


def decode_lines(output: str) -> list[str]:
    """Non-empty lines of *output*, in order."""
    return [line for line in output.strip().split("\n") if line]


def decode_text(output: str) -> str:
    return output


_TAG_RE = re.compile(r"Tag:\s*(\S+)")


def parse_talos_version(output: str) -> str:
    """Extract the ``Tag:`` value from ``talosctl version --short``."""
    for line in output.strip().splitlines():
        if "Tag:" in line:
            m = _TAG_RE.search(line)
            if m:
                return m.group(1)
    return "unknown"
