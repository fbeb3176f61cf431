"""ssrbridge - server-side rendering bridge between a Python backend and a render worker."""

__version__ = "0.1.0"

from ssrbridge.client import (
    AsyncRenderWorkerClient,
    EmbeddedRenderer,
    RenderWorkerClient,
    call_render,
    load_module,
)
from ssrbridge.config import ClientConfig, WorkerSettings
from ssrbridge.render import ModuleNotFound, NoRenderExport, RenderedPage, RenderError, RenderFailed

__all__ = [
    "AsyncRenderWorkerClient",
    "ClientConfig",
    "EmbeddedRenderer",
    "ModuleNotFound",
    "NoRenderExport",
    "RenderError",
    "RenderFailed",
    "RenderWorkerClient",
    "RenderedPage",
    "WorkerSettings",
    "__version__",
    "call_render",
    "load_module",
]
