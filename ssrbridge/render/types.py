"""Types shared by the render worker, the embedded renderer and the clients."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable

from ssrbridge.utils.exceptions import ErrorCategory, SsrBridgeError


@dataclass(slots=True)
class RenderedPage:
    """Server-rendered markup returned by a bundle."""

    head: list[str] = field(default_factory=list)
    body: str = ""


@dataclass(slots=True)
class ModuleHandle:
    """A loaded bundle and its resolved render callable."""

    render: Callable[[dict[str, Any]], Any]
    path: str
    module_name: str
    export: str
    loaded_at_ms: int = 0


class RenderError(SsrBridgeError):
    """Base of the closed set of request-level render failures."""

    kind = "render_failed"

    def __init__(self, message: str, code: str = "RENDER_FAILED", path: str | None = None):
        details = {"path": path} if path is not None else {}
        super().__init__(message, code=code, category=ErrorCategory.RECOVERABLE, details=details)
        self.path = path

    def __str__(self) -> str:
        return self.message

    @classmethod
    def from_kind(cls, kind: str | None, message: str, path: str | None = None) -> RenderError:
        """Rebuild a variant from its wire kind; unknown kinds become RenderFailed."""
        if kind == ModuleNotFound.kind and path is not None:
            return ModuleNotFound(path, message=message)
        if kind == NoRenderExport.kind and path is not None:
            return NoRenderExport(path, message=message)
        return RenderFailed(message)


class ModuleNotFound(RenderError):
    """The bundle path does not resolve to a loadable module."""

    kind = "module_not_found"

    def __init__(self, path: str, message: str | None = None):
        super().__init__(message or f"Cannot find module '{path}'", code="MODULE_NOT_FOUND", path=path)


class NoRenderExport(RenderError):
    """The bundle loads but exposes no callable render function."""

    kind = "no_render_export"

    def __init__(self, path: str, message: str | None = None):
        super().__init__(
            message or f"Module {path} does not export a render function",
            code="NO_RENDER_EXPORT",
            path=path,
        )


class RenderFailed(RenderError):
    """Any other failure: bad request, raising render, malformed result."""

    kind = "render_failed"

    def __init__(self, message: str):
        super().__init__(message, code="RENDER_FAILED")
