"""In-process rendering without a worker subprocess."""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any

from ssrbridge.protocol import PAGE_REQUIRED_MESSAGE
from ssrbridge.render import ModuleCache, ModuleHandle, RenderedPage, RenderFailed
from ssrbridge.render import call_render as invoke_render


class EmbeddedRenderer:
    """Loads bundles into the current interpreter, one module cache per path."""

    def __init__(self, *, production: bool = False, cwd: str | Path | None = None):
        self.production = production
        self.cwd = cwd
        self._caches: dict[str, ModuleCache] = {}
        self._lock = threading.RLock()

    def _cache_for(self, path: str) -> ModuleCache:
        cache = self._caches.get(path)
        if cache is None:
            cache = ModuleCache(path, production=self.production, cwd=self.cwd)
            self._caches[path] = cache
        return cache

    def load_module(self, path: str) -> ModuleHandle:
        with self._lock:
            return self._cache_for(path).get()

    async def call_render(self, handle: ModuleHandle, page: Any) -> RenderedPage:
        if not isinstance(page, dict):
            raise RenderFailed(PAGE_REQUIRED_MESSAGE)
        return await invoke_render(handle, page)

    async def render(self, path: str, page: Any) -> RenderedPage:
        """Validate the page, load the bundle and render it."""
        if not isinstance(page, dict):
            raise RenderFailed(PAGE_REQUIRED_MESSAGE)
        handle = self.load_module(path)
        return await invoke_render(handle, page)

    def invalidate(self, path: str | None = None) -> list[str]:
        """Forget cached bundles (all of them when ``path`` is None)."""
        with self._lock:
            if path is not None:
                cache = self._caches.pop(path, None)
                return cache.invalidate() if cache else []
            evicted: list[str] = []
            for cache in self._caches.values():
                evicted.extend(cache.invalidate())
            self._caches.clear()
            return evicted


_singleton: EmbeddedRenderer | None = None
_singleton_lock = threading.Lock()


def get_embedded_renderer() -> EmbeddedRenderer:
    """Get or create the process-global development renderer."""
    global _singleton
    with _singleton_lock:
        if _singleton is None:
            _singleton = EmbeddedRenderer()
    return _singleton


def load_module(path: str) -> ModuleHandle:
    return get_embedded_renderer().load_module(path)


async def call_render(handle: ModuleHandle, page: Any) -> RenderedPage:
    return await get_embedded_renderer().call_render(handle, page)
