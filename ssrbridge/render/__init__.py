"""Bundle loading, module cache and render invocation."""

from .graph import ModuleGraph, ModuleRecord, scan_imports
from .invoke import call_render, coerce_rendered_page
from .loader import RENDER_EXPORTS, ModuleCache, load_bundle, resolve_bundle_path, resolve_render_export
from .types import (
    ModuleHandle,
    ModuleNotFound,
    NoRenderExport,
    RenderedPage,
    RenderError,
    RenderFailed,
)

__all__ = [
    "RENDER_EXPORTS",
    "ModuleCache",
    "ModuleGraph",
    "ModuleHandle",
    "ModuleNotFound",
    "ModuleRecord",
    "NoRenderExport",
    "RenderError",
    "RenderFailed",
    "RenderedPage",
    "call_render",
    "coerce_rendered_page",
    "load_bundle",
    "resolve_bundle_path",
    "resolve_render_export",
    "scan_imports",
]
