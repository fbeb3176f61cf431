"""Bundle resolution, loading and the module cache policy."""

from __future__ import annotations

import importlib.util
import re
import sys
import time
from pathlib import Path
from types import ModuleType
from typing import Any, Callable

from loguru import logger

from ssrbridge.utils.exceptions import error_message

from .graph import ModuleGraph
from .types import ModuleHandle, ModuleNotFound, NoRenderExport, RenderFailed

# Tried in order; the first callable wins.
RENDER_EXPORTS: tuple[tuple[str, Callable[[ModuleType], Any]], ...] = (
    ("render", lambda module: getattr(module, "render", None)),
    ("default.render", lambda module: getattr(getattr(module, "default", None), "render", None)),
    ("default", lambda module: getattr(module, "default", None)),
)


def resolve_render_export(module: ModuleType) -> tuple[str, Callable[[dict[str, Any]], Any]] | None:
    """Return ``(export name, callable)`` for the first callable render export."""
    for export, accessor in RENDER_EXPORTS:
        candidate = accessor(module)
        if callable(candidate):
            return export, candidate
    return None


def resolve_bundle_path(module_path: str, cwd: str | Path | None = None) -> Path:
    """Resolve a bundle path to its entry source file."""
    base = Path(cwd) if cwd else Path.cwd()
    target = base / Path(module_path).expanduser()
    candidates = [target]
    if target.suffix != ".py":
        candidates.append(target.with_name(target.name + ".py"))
    candidates.append(target / "__init__.py")
    for candidate in candidates:
        if candidate.is_file():
            return candidate.resolve()
    raise ModuleNotFound(module_path)


def bundle_module_name(entry: Path) -> str:
    stem = entry.parent.name if entry.name == "__init__.py" else entry.stem
    safe_stem = re.sub(r"\W", "_", stem)
    return f"_ssrbridge_bundle_{safe_stem}_{abs(hash(str(entry)))}"


def _ensure_on_sys_path(directory: Path) -> None:
    text = str(directory)
    if text not in sys.path:
        # Bundle files must not shadow the stdlib or installed packages.
        sys.path.append(text)


def load_bundle(
    module_path: str,
    graph: ModuleGraph | None = None,
    *,
    cwd: str | Path | None = None,
    write_bytecode: bool = True,
) -> ModuleHandle:
    """Import a bundle from its path and resolve its render export."""
    entry = resolve_bundle_path(module_path, cwd)
    is_package = entry.name == "__init__.py"
    _ensure_on_sys_path(entry.parent.parent if is_package else entry.parent)
    name = bundle_module_name(entry)
    spec = importlib.util.spec_from_file_location(
        name,
        entry,
        submodule_search_locations=[str(entry.parent)] if is_package else None,
    )
    if spec is None or spec.loader is None:
        raise RenderFailed(f"Cannot create an import spec for {entry}")

    before = set(sys.modules)
    saved_flag = sys.dont_write_bytecode
    sys.dont_write_bytecode = saved_flag or not write_bytecode
    try:
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        spec.loader.exec_module(module)
    except ModuleNotFoundError as exc:
        sys.modules.pop(name, None)
        missing = exc.name or error_message(exc)
        raise ModuleNotFound(
            module_path,
            message=f"Cannot find module '{missing}' required by '{module_path}'",
        ) from exc
    except Exception as exc:
        sys.modules.pop(name, None)
        raise RenderFailed(error_message(exc)) from exc
    finally:
        sys.dont_write_bytecode = saved_flag
        if graph is not None:
            graph.track(name, entry, set(sys.modules) - before)

    found = resolve_render_export(module)
    if found is None:
        raise NoRenderExport(module_path)
    export, render = found
    logger.debug("Loaded bundle {} (export: {})", entry, export)
    return ModuleHandle(
        render=render,
        path=str(entry),
        module_name=name,
        export=export,
        loaded_at_ms=int(time.time() * 1000),
    )


class ModuleCache:
    """Holds the loaded bundle for one worker session.

    In production the bundle is loaded once and reused. In development the
    bundle and its whole import graph are evicted and loaded fresh on every
    ``get()``.
    """

    def __init__(self, module_path: str, *, production: bool = False, cwd: str | Path | None = None):
        self.module_path = module_path
        self.production = production
        self.cwd = Path(cwd) if cwd else Path.cwd()
        self.graph = ModuleGraph()
        self._handle: ModuleHandle | None = None
        self._entry_path: str | None = None
        self._modules_after_load: set[str] = set()

    @property
    def handle(self) -> ModuleHandle | None:
        return self._handle

    @property
    def loaded_path(self) -> str | None:
        return self._handle.path if self._handle else None

    def get(self) -> ModuleHandle:
        if self.production and self._handle is not None:
            return self._handle
        if not self.production:
            self.invalidate()
        self._entry_path = str(resolve_bundle_path(self.module_path, self.cwd))
        try:
            handle = load_bundle(self.module_path, self.graph, cwd=self.cwd, write_bytecode=self.production)
        finally:
            self._modules_after_load = set(sys.modules)
        self._handle = handle
        return handle

    def invalidate(self) -> list[str]:
        """Drop the cached handle and evict the bundle's modules."""
        self._handle = None
        if self._entry_path is None:
            return []
        # Imports made after the load (inside render) join the graph first.
        self.graph.adopt(set(sys.modules) - self._modules_after_load)
        return self.graph.invalidate(self._entry_path)
