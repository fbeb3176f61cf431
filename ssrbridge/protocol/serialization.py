"""Serialization helpers for render frames."""

from __future__ import annotations

from typing import Any

from ssrbridge.render.types import RenderedPage, RenderError, RenderFailed

from .framing import MAX_LINE_BYTES, encode_frame
from .messages import RenderRequest, RenderResponse

PAGE_REQUIRED_MESSAGE = "Request must include a page object"


def safe_dict(value: Any) -> dict[str, Any]:
    """Return the value when dict-like, otherwise an empty dict."""
    return value if isinstance(value, dict) else {}


def is_string_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


def encode_request_line(request: RenderRequest, *, limit: int = MAX_LINE_BYTES) -> bytes:
    """Encode a request frame into one tagged line."""
    return encode_frame({"page": request.page}, limit=limit)


def response_payload(response: RenderResponse) -> dict[str, Any]:
    """Wire document for a response; failures carry kind and path when known."""
    if response.ok:
        return {"ok": True, "head": response.head, "body": response.body}
    payload: dict[str, Any] = {"ok": False, "error": response.error or "render failed"}
    if response.kind:
        payload["kind"] = response.kind
    if response.path is not None:
        payload["path"] = response.path
    return payload


def encode_response_line(response: RenderResponse, *, limit: int = MAX_LINE_BYTES) -> bytes:
    """Encode a response frame into one tagged line."""
    return encode_frame(response_payload(response), limit=limit)


def decode_request_payload(payload: Any) -> RenderRequest:
    """Validate a decoded request document; the page must be a JSON object."""
    page = safe_dict(payload).get("page")
    if not isinstance(page, dict):
        raise RenderFailed(PAGE_REQUIRED_MESSAGE)
    return RenderRequest(page=page)


def decode_response_payload(payload: Any) -> RenderResponse:
    """Decode a raw response document into a normalized RenderResponse."""
    row = safe_dict(payload)
    if row.get("ok") is True:
        head = row.get("head", [])
        body = row.get("body", "")
        if not is_string_list(head):
            return RenderResponse(ok=False, error="Malformed response: head must be a list of strings", kind=RenderFailed.kind)
        if not isinstance(body, str):
            return RenderResponse(ok=False, error="Malformed response: body must be a string", kind=RenderFailed.kind)
        return RenderResponse(ok=True, head=list(head), body=body)
    error = row.get("error")
    kind = row.get("kind")
    path = row.get("path")
    return RenderResponse(
        ok=False,
        error=str(error) if error is not None else "render failed",
        kind=str(kind) if isinstance(kind, str) else None,
        path=str(path) if isinstance(path, str) else None,
    )


def response_from_page(page: RenderedPage) -> RenderResponse:
    return RenderResponse(ok=True, head=list(page.head), body=page.body)


def response_from_error(error: RenderError) -> RenderResponse:
    return RenderResponse(ok=False, error=error.message, kind=error.kind, path=error.path)


def to_render_error(response: RenderResponse) -> RenderError:
    """Convert a failure response to the matching RenderError variant."""
    return RenderError.from_kind(response.kind, response.error or "render failed", response.path)


def to_rendered_page(response: RenderResponse) -> RenderedPage:
    """Return the rendered page of a success response, raising the error otherwise."""
    if not response.ok:
        raise to_render_error(response)
    return RenderedPage(head=list(response.head), body=response.body)
