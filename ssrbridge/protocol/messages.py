"""Request/response frames exchanged between the bridge client and the worker."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(slots=True)
class RenderRequest:
    """Request frame; ``page`` is passed verbatim to the bundle."""

    page: dict[str, Any]


@dataclass(slots=True)
class RenderResponse:
    """Response frame, success or failure."""

    ok: bool
    head: list[str] = field(default_factory=list)
    body: str = ""
    error: str | None = None
    kind: str | None = None
    path: str | None = None
