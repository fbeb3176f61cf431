"""asyncio flavour of the render worker client."""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections import deque
from typing import Any

from loguru import logger

from ssrbridge.config.schema import ClientConfig
from ssrbridge.protocol import (
    MAX_LINE_BYTES,
    PAGE_REQUIRED_MESSAGE,
    OversizedLineError,
    RenderRequest,
    RenderResponse,
    decode_frame,
    decode_response_payload,
    encode_request_line,
    is_frame,
    read_frame_line,
    to_rendered_page,
)
from ssrbridge.render.types import RenderedPage, RenderFailed
from ssrbridge.utils.exceptions import (
    FrameDecodeError,
    WorkerExitedError,
    WorkerStartError,
    WorkerTimeoutError,
)

from .host_client import RESPONSE_OVER_LIMIT_MESSAGE, STDERR_TAIL_LINES


class AsyncRenderWorkerClient:
    """Same contract as RenderWorkerClient, driven by an event loop."""

    def __init__(self, bundle_path: str | None = None, *, config: ClientConfig | None = None, **options: Any):
        if config is None:
            if not bundle_path:
                raise ValueError("bundle_path or config is required")
            config = ClientConfig(bundle_path=bundle_path, **options)
        self.config = config
        self._proc: asyncio.subprocess.Process | None = None
        self._stderr_task: asyncio.Task[None] | None = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.returncode is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def stderr_tail(self) -> list[str]:
        return list(self._stderr_tail)

    async def start(self) -> None:
        if self.running:
            return
        command = self.config.worker_command()
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=self.config.cwd,
                env=self.config.worker_env(dict(os.environ)),
                limit=MAX_LINE_BYTES,
            )
        except OSError as exc:
            raise WorkerStartError(f"failed to spawn render worker: {exc}", command) from exc
        self._stderr_tail.clear()
        self._proc = proc
        self._stderr_task = asyncio.create_task(self._stderr_loop(proc))
        logger.info("Started render worker pid={} for {}", proc.pid, self.config.bundle_path)

    async def _stderr_loop(self, proc: asyncio.subprocess.Process) -> None:
        assert proc.stderr is not None
        while True:
            try:
                raw = await proc.stderr.readline()
            except ValueError:
                continue
            if not raw:
                return
            text = raw.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_tail.append(text)
                logger.debug("[ssr-worker] {}", text)

    async def _next_response(self, proc: asyncio.subprocess.Process) -> RenderResponse | None:
        assert proc.stdout is not None
        while True:
            try:
                raw = await read_frame_line(proc.stdout)
            except OversizedLineError as exc:
                if is_frame(exc.prefix):
                    return RenderResponse(ok=False, error=RESPONSE_OVER_LIMIT_MESSAGE, kind=RenderFailed.kind)
                continue
            if not raw:
                return None
            if not is_frame(raw):
                logger.debug("Ignored untagged worker output: {}", raw[:200].decode("utf-8", errors="replace").strip())
                continue
            try:
                payload = decode_frame(raw)
            except FrameDecodeError as exc:
                logger.warning("Render worker sent a malformed frame: {}", exc.message)
                return RenderResponse(ok=False, error=exc.message, kind=RenderFailed.kind)
            return decode_response_payload(payload)

    async def send(self, page: dict[str, Any], *, timeout: float | None = None) -> RenderedPage:
        """Render one page through the worker."""
        if not isinstance(page, dict):
            raise RenderFailed(PAGE_REQUIRED_MESSAGE)
        line = encode_request_line(RenderRequest(page=page))
        deadline = timeout if timeout is not None else self.config.timeout_seconds
        async with self._lock:
            await self.start()
            proc = self._proc
            assert proc is not None and proc.stdin is not None
            try:
                try:
                    proc.stdin.write(line)
                    await proc.stdin.drain()
                except (BrokenPipeError, ConnectionResetError) as exc:
                    raise await self._exited_error("render worker closed its input") from exc
                try:
                    response = await asyncio.wait_for(self._next_response(proc), timeout=deadline)
                except asyncio.TimeoutError as exc:
                    logger.warning("Render worker pid={} gave no response in {}s; killing it", proc.pid, deadline)
                    await self._kill()
                    raise WorkerTimeoutError(deadline) from exc
            except asyncio.CancelledError:
                # The abandoned response would be paired with the next request.
                logger.warning("Render request to worker pid={} was cancelled; killing it", proc.pid)
                with contextlib.suppress(ProcessLookupError):
                    proc.kill()
                await asyncio.shield(self._kill())
                raise
            if response is None:
                raise await self._exited_error("render worker exited before responding")
        return to_rendered_page(response)

    async def _exited_error(self, message: str) -> WorkerExitedError:
        proc = self._proc
        returncode: int | None = None
        if proc is not None:
            with contextlib.suppress(asyncio.TimeoutError):
                returncode = await asyncio.wait_for(proc.wait(), timeout=self.config.shutdown_timeout_seconds)
            if self._stderr_task is not None:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(asyncio.shield(self._stderr_task), timeout=self.config.shutdown_timeout_seconds)
        self._proc = None
        return WorkerExitedError(message, returncode=returncode, stderr="\n".join(self._stderr_tail))

    async def _kill(self) -> None:
        proc = self._proc
        self._proc = None
        if proc is None:
            return
        with contextlib.suppress(ProcessLookupError):
            proc.kill()
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(proc.wait(), timeout=self.config.shutdown_timeout_seconds)

    async def close(self) -> None:
        """Close the worker's input and wait for it to exit, escalating to kill."""
        async with self._lock:
            proc = self._proc
            self._proc = None
            if proc is None:
                return
            if proc.returncode is None:
                if proc.stdin is not None:
                    proc.stdin.close()
                try:
                    await asyncio.wait_for(proc.wait(), timeout=self.config.shutdown_timeout_seconds)
                except asyncio.TimeoutError:
                    with contextlib.suppress(ProcessLookupError):
                        proc.terminate()
                    try:
                        await asyncio.wait_for(proc.wait(), timeout=self.config.shutdown_timeout_seconds)
                    except asyncio.TimeoutError:
                        with contextlib.suppress(ProcessLookupError):
                            proc.kill()
                        await proc.wait()
            if self._stderr_task is not None:
                with contextlib.suppress(asyncio.TimeoutError):
                    await asyncio.wait_for(self._stderr_task, timeout=self.config.shutdown_timeout_seconds)
                self._stderr_task = None

    async def __aenter__(self) -> AsyncRenderWorkerClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
