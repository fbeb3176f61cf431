"""Dependency graph of bundle modules, used for development-mode invalidation.

The graph is an arena of records keyed by resolved source path. Edges are
taken from the import statements in each recorded module's source, so the
walk does not depend on interpreter internals beyond ``sys.modules``.
"""

from __future__ import annotations

import ast
import importlib
import importlib.util
import sys
import sysconfig
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Iterable

from loguru import logger


@dataclass(slots=True)
class ModuleRecord:
    """One bundle module and the paths of the bundle modules it imports."""

    name: str
    path: str
    children: list[str] = field(default_factory=list)
    imports: frozenset[str] = frozenset()


_INSTALL_DIRS = frozenset({"site-packages", "dist-packages"})


def _excluded_roots() -> tuple[Path, ...]:
    paths = sysconfig.get_paths()
    roots = {Path(__file__).resolve().parents[1]}
    for key in ("stdlib", "platstdlib", "purelib", "platlib"):
        value = paths.get(key)
        if value:
            roots.add(Path(value).resolve())
    return tuple(roots)


def module_source_path(module: ModuleType) -> Path | None:
    """Resolved ``.py`` source of a module, or None for builtins and extensions."""
    file = getattr(module, "__file__", None)
    if not isinstance(file, str) or not file.endswith(".py"):
        return None
    return Path(file).resolve()


def is_bundle_source(path: Path, excluded: tuple[Path, ...] | None = None) -> bool:
    """True for source files that belong to the bundle rather than the interpreter or installed packages."""
    if _INSTALL_DIRS.intersection(path.parts):
        return False
    roots = excluded if excluded is not None else _excluded_roots()
    return not any(path.is_relative_to(root) for root in roots)


def _with_parents(dotted: str) -> list[str]:
    parts = dotted.split(".")
    return [".".join(parts[: i + 1]) for i in range(len(parts))]


def scan_imports(source_path: Path, module_name: str, is_package: bool = False) -> set[str]:
    """Absolute module names referenced by import statements in a source file."""
    try:
        tree = ast.parse(source_path.read_text(encoding="utf-8"), filename=str(source_path))
    except (OSError, SyntaxError, UnicodeDecodeError, ValueError):
        return set()
    package = module_name if is_package else module_name.rpartition(".")[0]
    names: set[str] = set()
    for node in ast.walk(tree):
        if isinstance(node, ast.Import):
            for alias in node.names:
                names.update(_with_parents(alias.name))
        elif isinstance(node, ast.ImportFrom):
            if node.level:
                try:
                    base = importlib.util.resolve_name("." * node.level + (node.module or ""), package)
                except (ImportError, ValueError):
                    continue
            else:
                base = node.module or ""
            if not base:
                continue
            names.update(_with_parents(base))
            for alias in node.names:
                if alias.name != "*":
                    names.add(f"{base}.{alias.name}")
    return names


class ModuleGraph:
    """Arena of bundle module records keyed by resolved source path."""

    def __init__(self) -> None:
        self._records: dict[str, ModuleRecord] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, path: str) -> ModuleRecord | None:
        return self._records.get(path)

    def records(self) -> list[ModuleRecord]:
        return list(self._records.values())

    def track(self, entry_name: str, entry_path: Path, new_names: Iterable[str]) -> ModuleRecord:
        """Record the entry module and the bundle modules that appeared while loading it."""
        fresh = self._bundle_modules(new_names)
        fresh[entry_name] = entry_path.resolve()
        self._record(fresh)
        return self._records[str(fresh[entry_name])]

    def adopt(self, new_names: Iterable[str]) -> list[ModuleRecord]:
        """Record bundle modules that recorded modules imported after their load.

        Covers imports made inside functions, e.g. during a render call. A new
        module is adopted only when a recorded module's import statements name
        it, so modules loaded by unrelated code are left alone.
        """
        candidates = self._bundle_modules(new_names)
        adopted: dict[str, Path] = {}
        while True:
            wanted = set().union(*(record.imports for record in self._records.values()))
            reached = {name: path for name, path in candidates.items() if name in wanted and name not in adopted}
            if not reached:
                break
            adopted.update(reached)
            self._record(reached)
        if not adopted:
            return []
        paths = {name: str(path) for name, path in adopted.items()}
        for record in self._records.values():
            linked = {paths[name] for name in record.imports if name in paths and name != record.name}
            if linked - set(record.children):
                record.children = sorted(set(record.children) | linked)
        logger.debug("Adopted {} late bundle import(s): {}", len(adopted), ", ".join(sorted(adopted)))
        return [self._records[path] for path in paths.values()]

    def _bundle_modules(self, names: Iterable[str]) -> dict[str, Path]:
        excluded = _excluded_roots()
        found: dict[str, Path] = {}
        for name in names:
            module = sys.modules.get(name)
            if module is None:
                continue
            path = module_source_path(module)
            if path is None or not is_bundle_source(path, excluded):
                continue
            found[name] = path
        return found

    def _record(self, fresh: dict[str, Path]) -> None:
        known = {
            record.name: Path(record.path)
            for record in self._records.values()
            if record.name in sys.modules
        }
        known.update(fresh)
        for name, path in fresh.items():
            deps = scan_imports(path, name, is_package=path.name == "__init__.py")
            children = sorted({str(known[dep]) for dep in deps if dep in known and dep != name})
            self._records[str(path)] = ModuleRecord(
                name=name, path=str(path), children=children, imports=frozenset(deps)
            )

    def invalidate(self, entry_path: str) -> list[str]:
        """Evict the entry module and everything reachable from it, each exactly once."""
        evicted: list[str] = []
        visited: set[str] = set()
        stack = [entry_path]
        while stack:
            path = stack.pop()
            if path in visited:
                continue
            visited.add(path)
            record = self._records.pop(path, None)
            if record is None:
                continue
            stack.extend(child for child in record.children if child not in visited)
            module = sys.modules.pop(record.name, None)
            if module is not None:
                _detach_from_parent(record.name, module)
            evicted.append(record.name)
        importlib.invalidate_caches()
        if evicted:
            logger.debug("Evicted {} bundle module(s): {}", len(evicted), ", ".join(evicted))
        return evicted


def _detach_from_parent(name: str, module: ModuleType) -> None:
    # A cached parent package keeps the submodule as an attribute, which would
    # short-circuit ``from pkg import sub`` on the next load.
    parent_name, _, child = name.rpartition(".")
    if not parent_name:
        return
    parent = sys.modules.get(parent_name)
    if parent is not None and getattr(parent, child, None) is module:
        try:
            delattr(parent, child)
        except AttributeError:
            pass
