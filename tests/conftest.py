"""Pytest hooks and fixtures."""

import os
import sys
from pathlib import Path

import pytest

from ssrbridge.config import ClientConfig

REPO_ROOT = Path(__file__).resolve().parents[1]
BUNDLES = Path(__file__).resolve().parent / "fixtures" / "bundles"

collect_ignore = ["fixtures"]


def pytest_configure(config):
    """Register custom markers (also in pyproject.toml)."""
    config.addinivalue_line(
        "markers",
        "worker_process: spawns a real render worker subprocess",
    )


def pytest_collection_modifyitems(config, items):
    """Skip worker_process tests when SSRBRIDGE_SKIP_WORKER_TESTS=1."""
    if os.environ.get("SSRBRIDGE_SKIP_WORKER_TESTS") != "1":
        return
    skip = pytest.mark.skip(reason="Worker subprocess tests disabled")
    for item in items:
        if "worker_process" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(autouse=True)
def _isolate_bundle_imports(tmp_path):
    """Forget bundle modules and sys.path entries added by a test."""
    saved_path = list(sys.path)
    before = set(sys.modules)
    yield
    sys.path[:] = saved_path
    roots = (str(tmp_path), str(BUNDLES))
    for name in set(sys.modules) - before:
        module = sys.modules.get(name)
        file = getattr(module, "__file__", None) or ""
        if name.startswith("_ssrbridge_bundle_") or file.startswith(roots):
            sys.modules.pop(name, None)


@pytest.fixture
def client_config():
    """Factory for worker client configs that can import ssrbridge from the checkout."""

    def _make(bundle_path: str, **options) -> ClientConfig:
        env = {"PYTHONPATH": os.pathsep.join(filter(None, [str(REPO_ROOT), os.environ.get("PYTHONPATH")]))}
        options.setdefault("timeout_seconds", 15.0)
        return ClientConfig(bundle_path=bundle_path, env=env, **options)

    return _make
