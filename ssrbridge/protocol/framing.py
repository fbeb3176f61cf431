"""Line framing for the worker stdio stream.

A protocol line is ``TAG + <one JSON document> + "\\n"``. Anything else on the
stream is incidental output and is skipped by readers.
"""

from __future__ import annotations

import json
from typing import Any

from ssrbridge.utils.exceptions import FrameDecodeError, FrameTooLargeError

TAG = "ISSR"
TAG_BYTES = TAG.encode("ascii")

# Upper bound for tag + JSON, newline excluded.
MAX_LINE_BYTES = 1024 * 1024


def is_frame(line: str | bytes) -> bool:
    """True when the line carries the protocol tag."""
    if isinstance(line, bytes):
        return line.startswith(TAG_BYTES)
    return line.startswith(TAG)


def encode_frame(payload: dict[str, Any], *, limit: int = MAX_LINE_BYTES) -> bytes:
    """Encode one payload as a tagged, newline-terminated line."""
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    try:
        data = (TAG + text).encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates have no UTF-8 form; \u escapes carry them intact.
        data = (TAG + json.dumps(payload, ensure_ascii=True, separators=(",", ":"))).encode("ascii")
    if len(data) > limit:
        raise FrameTooLargeError(len(data), limit)
    return data + b"\n"


def decode_frame(line: str | bytes) -> Any:
    """Decode the JSON document of a tagged line."""
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise FrameDecodeError(f"Frame is not valid UTF-8: {exc}") from exc
    line = line.rstrip("\r\n")
    if not line.startswith(TAG):
        raise FrameDecodeError("Line does not carry the protocol tag")
    try:
        return json.loads(line[len(TAG):])
    except json.JSONDecodeError as exc:
        raise FrameDecodeError(f"Invalid JSON in frame: {exc}") from exc
