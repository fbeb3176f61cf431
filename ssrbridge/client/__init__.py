"""Bridge clients: worker subprocess (sync and asyncio) and in-process."""

from .async_client import AsyncRenderWorkerClient
from .embedded import EmbeddedRenderer, call_render, get_embedded_renderer, load_module
from .host_client import RenderWorkerClient

__all__ = [
    "AsyncRenderWorkerClient",
    "EmbeddedRenderer",
    "RenderWorkerClient",
    "call_render",
    "get_embedded_renderer",
    "load_module",
]
