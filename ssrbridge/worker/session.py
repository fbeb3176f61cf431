"""Per-process render session: one request in, one framed response out."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from ssrbridge.protocol import (
    MAX_LINE_BYTES,
    RenderResponse,
    decode_frame,
    decode_request_payload,
    encode_response_line,
    is_frame,
    response_from_error,
    response_from_page,
)
from ssrbridge.render import ModuleCache, ModuleHandle, RenderError, RenderFailed, call_render
from ssrbridge.utils.exceptions import FrameDecodeError, FrameTooLargeError, error_message

REQUEST_TOO_LARGE_MESSAGE = f"Request exceeds the {MAX_LINE_BYTES} byte line limit"
RESPONSE_TOO_LARGE_MESSAGE = f"Response exceeds the {MAX_LINE_BYTES} byte line limit"


class WorkerState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    RENDERING = "rendering"
    TERMINATED = "terminated"


class WorkerSession:
    """Module cache plus request handling for a single render worker."""

    def __init__(
        self,
        module_path: str,
        *,
        production: bool = False,
        debug: bool = False,
        cwd: str | Path | None = None,
    ):
        self.cache = ModuleCache(module_path, production=production, cwd=cwd)
        self.debug = debug
        self.state = WorkerState.IDLE
        self.handled = 0

    @property
    def production(self) -> bool:
        return self.cache.production

    @property
    def module_path(self) -> str:
        return self.cache.module_path

    def preload(self) -> ModuleHandle:
        """Load the bundle ahead of the first request."""
        self.state = WorkerState.LOADING
        try:
            return self.cache.get()
        finally:
            self.state = WorkerState.IDLE

    async def render_payload(self, payload: Any) -> RenderResponse:
        """Validate, load, render and classify; never raises for request-level failures."""
        try:
            request = decode_request_payload(payload)
            self.state = WorkerState.LOADING
            handle = self.cache.get()
            self.state = WorkerState.RENDERING
            page = await call_render(handle, request.page)
        except RenderError as err:
            self._log_failure(err)
            return response_from_error(err)
        except Exception as exc:
            err = RenderFailed(error_message(exc))
            err.__cause__ = exc
            self._log_failure(err)
            return response_from_error(err)
        finally:
            self.state = WorkerState.IDLE
            self.handled += 1
        return response_from_page(page)

    async def handle_line(self, line: str | bytes) -> bytes | None:
        """Answer one input line; untagged lines produce no response."""
        if not is_frame(line):
            return None
        try:
            payload = decode_frame(line)
        except FrameDecodeError as exc:
            err = RenderFailed(exc.message)
            self._log_failure(err)
            return self.encode(response_from_error(err))
        return self.encode(await self.render_payload(payload))

    def oversized_request(self, prefix: bytes) -> bytes | None:
        """Response for a line that exceeded the bound; untagged ones are ignored."""
        if not is_frame(prefix):
            logger.debug("Dropped oversized untagged line")
            return None
        err = RenderFailed(REQUEST_TOO_LARGE_MESSAGE)
        self._log_failure(err)
        return self.encode(response_from_error(err))

    def internal_failure(self, line: bytes, exc: BaseException) -> bytes | None:
        """Failure response for a tagged line whose handling raised unexpectedly."""
        self.state = WorkerState.IDLE
        if not is_frame(line):
            return None
        return encode_response_line(response_from_error(RenderFailed(error_message(exc))))

    def encode(self, response: RenderResponse) -> bytes:
        try:
            return encode_response_line(response)
        except FrameTooLargeError as exc:
            logger.warning("Response dropped: {}", exc.message)
            return encode_response_line(response_from_error(RenderFailed(RESPONSE_TOO_LARGE_MESSAGE)))
        except (TypeError, ValueError) as exc:
            err = RenderFailed(f"Response is not serializable: {error_message(exc)}")
            self._log_failure(err)
            return encode_response_line(response_from_error(err))

    def _log_failure(self, err: RenderError) -> None:
        if self.debug:
            logger.opt(exception=err.__cause__ or err).error("[SSR Error] {}: {}", err.kind, err.message)
        else:
            logger.warning("Render failed ({}): {}", err.kind, err.message)
