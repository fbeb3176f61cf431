"""Invoke a bundle's render function and validate what it returns."""

from __future__ import annotations

import inspect
from collections.abc import Mapping
from typing import Any

from ssrbridge.utils.exceptions import error_message

from .types import ModuleHandle, RenderedPage, RenderError, RenderFailed

HEAD_TYPE_MESSAGE = "head must be a list of strings"
BODY_TYPE_MESSAGE = "body must be a string"


def _field(result: Any, name: str) -> Any:
    if isinstance(result, Mapping):
        return result.get(name)
    return getattr(result, name, None)


def coerce_rendered_page(result: Any) -> RenderedPage:
    """Validate a render result; missing head/body default to empty."""
    if result is None:
        raise RenderFailed("render() returned None; expected a mapping with head and body")
    head = _field(result, "head")
    body = _field(result, "body")
    if head is None:
        head = []
    if body is None:
        body = ""
    if not isinstance(head, (list, tuple)) or not all(isinstance(item, str) for item in head):
        raise RenderFailed(HEAD_TYPE_MESSAGE)
    if not isinstance(body, str):
        raise RenderFailed(BODY_TYPE_MESSAGE)
    return RenderedPage(head=list(head), body=body)


async def call_render(handle: ModuleHandle, page: dict[str, Any]) -> RenderedPage:
    """Run the handle's render function, awaiting it when it is asynchronous."""
    try:
        result = handle.render(page)
        if inspect.isawaitable(result):
            result = await result
    except RenderError:
        raise
    except Exception as exc:
        raise RenderFailed(error_message(exc)) from exc
    return coerce_rendered_page(result)
