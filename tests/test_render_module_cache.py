import sys
import uuid
from pathlib import Path

import pytest

from ssrbridge.render import ModuleCache, ModuleGraph, ModuleNotFound, scan_imports


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _chain_bundle(root: Path) -> tuple[Path, Path, str]:
    """entry -> <pkg>.views -> <pkg>.strings; returns (entry, strings file, package name)."""
    pkg = f"chain_{uuid.uuid4().hex[:8]}"
    entry = _write(
        root / "entry.py",
        f"from {pkg} import views\n\n\ndef render(page):\n    return views.render(page)\n",
    )
    _write(root / pkg / "__init__.py", "")
    _write(
        root / pkg / "views.py",
        "from .strings import GREETING\n\n\ndef render(page):\n    return {'head': [], 'body': GREETING}\n",
    )
    strings = _write(root / pkg / "strings.py", "GREETING = 'one'\n")
    return entry, strings, pkg


def _body(cache: ModuleCache) -> str:
    return cache.get().render({})["body"]


def test_development_reloads_transitive_edits(tmp_path):
    entry, strings, _ = _chain_bundle(tmp_path)
    cache = ModuleCache(str(entry), production=False)
    assert _body(cache) == "one"

    strings.write_text("GREETING = 'two, edited'\n", encoding="utf-8")
    assert _body(cache) == "two, edited"


def test_development_reloads_entry_edits(tmp_path):
    entry = _write(tmp_path / "page_entry.py", "def render(page):\n    return {'body': 'v1'}\n")
    cache = ModuleCache(str(entry), production=False)
    assert _body(cache) == "v1"
    entry.write_text("def render(page):\n    return {'body': 'version 2'}\n", encoding="utf-8")
    assert _body(cache) == "version 2"


def test_production_keeps_first_load(tmp_path):
    entry, strings, _ = _chain_bundle(tmp_path)
    cache = ModuleCache(str(entry), production=True)
    first = cache.get()
    assert first.render({})["body"] == "one"

    strings.write_text("GREETING = 'two, edited'\n", encoding="utf-8")
    assert cache.get() is first
    assert _body(cache) == "one"

    cache.invalidate()
    assert _body(cache) == "two, edited"


def test_invalidate_evicts_whole_graph_once(tmp_path):
    entry, _, pkg = _chain_bundle(tmp_path)
    cache = ModuleCache(str(entry), production=True)
    handle = cache.get()
    assert {f"{pkg}", f"{pkg}.views", f"{pkg}.strings"} <= set(sys.modules)

    evicted = cache.invalidate()
    assert len(evicted) == len(set(evicted))
    assert set(evicted) == {handle.module_name, pkg, f"{pkg}.views", f"{pkg}.strings"}
    for name in evicted:
        assert name not in sys.modules
    assert cache.handle is None
    assert cache.invalidate() == []


def test_cyclic_imports_are_evicted_once(tmp_path):
    tag = uuid.uuid4().hex[:8]
    left, right = f"cyc_left_{tag}", f"cyc_right_{tag}"
    _write(tmp_path / f"{left}.py", f"import {right}\n\nVALUE = 'left'\n")
    _write(tmp_path / f"{right}.py", f"import {left}\n\nVALUE = 'right'\n")
    entry = _write(
        tmp_path / "cyclic.py",
        f"import {left}\nimport {right}\n\n\ndef render(page):\n    return {{'body': {left}.VALUE + {right}.VALUE}}\n",
    )
    cache = ModuleCache(str(entry), production=False)
    assert _body(cache) == "leftright"

    record = cache.graph.get(str((tmp_path / f"{left}.py").resolve()))
    assert record is not None
    assert record.children == [str((tmp_path / f"{right}.py").resolve())]

    evicted = cache.invalidate()
    assert len(evicted) == 3
    assert {left, right} <= set(evicted)
    assert len(cache.graph) == 0


def test_stdlib_and_installed_modules_are_not_tracked(tmp_path):
    entry = _write(
        tmp_path / "uses_stdlib.py",
        "import json\nimport pydantic\n\n\ndef render(page):\n    return {'body': json.dumps(page)}\n",
    )
    cache = ModuleCache(str(entry), production=False)
    cache.get()
    names = {record.name for record in cache.graph.records()}
    assert "json" not in names
    assert "pydantic" not in names
    assert len(names) == 1


def test_missing_entry_raises_module_not_found(tmp_path):
    cache = ModuleCache("absent.py", production=False, cwd=tmp_path)
    with pytest.raises(ModuleNotFound):
        cache.get()


def test_scan_imports_resolves_relative_imports(tmp_path):
    source = _write(
        tmp_path / "views.py",
        "import os.path\nfrom . import strings\nfrom .layout import Frame\nfrom .widgets import *\nfrom ..outside import thing\n",
    )
    names = scan_imports(source, "site.pages.views")
    assert {"os", "os.path", "site.pages", "site.pages.strings", "site.pages.layout", "site.pages.layout.Frame", "site.pages.widgets"} <= names
    assert "site.outside.thing" in names


def test_scan_imports_ignores_unparsable_source(tmp_path):
    source = _write(tmp_path / "broken.py", "def (:\n")
    assert scan_imports(source, "broken") == set()


def test_graph_invalidate_unknown_entry_is_noop(tmp_path):
    graph = ModuleGraph()
    assert len(graph) == 0
    assert graph.invalidate(str(tmp_path / "unknown.py")) == []


def test_development_reloads_modules_imported_inside_render(tmp_path):
    helper_name = f"lazy_{uuid.uuid4().hex[:8]}"
    helper = _write(tmp_path / f"{helper_name}.py", "TEXT = 'one'\n")
    entry = _write(
        tmp_path / "lazy_entry.py",
        f"def render(page):\n    import {helper_name} as helper\n\n    return {{'body': helper.TEXT}}\n",
    )
    cache = ModuleCache(str(entry), production=False)
    assert _body(cache) == "one"
    assert helper_name in sys.modules

    helper.write_text("TEXT = 'two, edited'\n", encoding="utf-8")
    assert _body(cache) == "two, edited"


def test_invalidate_evicts_lazy_imports_once(tmp_path):
    helper_name = f"lazy_{uuid.uuid4().hex[:8]}"
    _write(tmp_path / f"{helper_name}.py", "TEXT = 'one'\n")
    entry = _write(
        tmp_path / "lazy_entry.py",
        f"def render(page):\n    import {helper_name}\n\n    return {{'body': {helper_name}.TEXT}}\n",
    )
    cache = ModuleCache(str(entry), production=True)
    handle = cache.get()
    handle.render({})

    evicted = cache.invalidate()
    assert sorted(evicted) == sorted([handle.module_name, helper_name])
    assert helper_name not in sys.modules


def test_adopt_ignores_modules_no_bundle_module_imports(tmp_path):
    unrelated_name = f"unrelated_{uuid.uuid4().hex[:8]}"
    _write(tmp_path / f"{unrelated_name}.py", "VALUE = 1\n")
    entry = _write(tmp_path / "plain_entry.py", "def render(page):\n    return {'body': 'x'}\n")
    cache = ModuleCache(str(entry), production=False)
    cache.get()
    __import__(unrelated_name)

    assert cache.graph.adopt([unrelated_name]) == []
    assert unrelated_name not in {record.name for record in cache.graph.records()}
