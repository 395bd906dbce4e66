"""Relative-age rendering for Kubernetes timestamps."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ago(timestamp: Optional[str], *, now: Optional[datetime] = None) -> str:
    """Render the time since an RFC 3339 *timestamp* as ``45s``/``3m``/``2h``/``4d``."""
    if not timestamp:
        return ""
    try:
        then = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return ""
    if then.tzinfo is None:
        then = then.replace(tzinfo=timezone.utc)
    current = now or datetime.now(timezone.utc)
    seconds = max(int((current - then).total_seconds()), 0)
    if seconds < 60:
        return f"{seconds}s"
    if seconds < 3600:
        return f"{seconds // 60}m"
    if seconds < 86400:
        return f"{seconds // 3600}h"
    return f"{seconds // 86400}d"
