"""Client for a render worker subprocess (framed JSON lines over stdio)."""

from __future__ import annotations

import contextlib
import os
import queue
import subprocess
import threading
from collections import deque
from typing import Any

from loguru import logger

from ssrbridge.config.schema import ClientConfig
from ssrbridge.protocol import (
    MAX_LINE_BYTES,
    PAGE_REQUIRED_MESSAGE,
    RenderRequest,
    RenderResponse,
    decode_frame,
    decode_response_payload,
    encode_request_line,
    is_frame,
    to_rendered_page,
)
from ssrbridge.render.types import RenderedPage, RenderFailed
from ssrbridge.utils.exceptions import (
    FrameDecodeError,
    WorkerExitedError,
    WorkerStartError,
    WorkerTimeoutError,
)

STDERR_TAIL_LINES = 50
RESPONSE_OVER_LIMIT_MESSAGE = f"Response exceeds the {MAX_LINE_BYTES} byte line limit"


class RenderWorkerClient:
    """Sends one render request at a time to a worker and waits for its answer.

    Responses are paired with requests purely by order, so calls are
    serialized under a lock and a timed-out worker is killed rather than
    reused.
    """

    def __init__(self, bundle_path: str | None = None, *, config: ClientConfig | None = None, **options: Any):
        if config is None:
            if not bundle_path:
                raise ValueError("bundle_path or config is required")
            config = ClientConfig(bundle_path=bundle_path, **options)
        self.config = config
        self._proc: subprocess.Popen[bytes] | None = None
        self._responses: queue.Queue[RenderResponse | None] | None = None
        self._stderr_thread: threading.Thread | None = None
        self._stderr_tail: deque[str] = deque(maxlen=STDERR_TAIL_LINES)
        self._lock = threading.RLock()

    @property
    def running(self) -> bool:
        return self._proc is not None and self._proc.poll() is None

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc else None

    @property
    def stderr_tail(self) -> list[str]:
        return list(self._stderr_tail)

    def start(self) -> None:
        """Spawn the worker unless one is already running."""
        with self._lock:
            if self.running:
                return
            self._discard()
            command = self.config.worker_command()
            try:
                proc = subprocess.Popen(
                    command,
                    stdin=subprocess.PIPE,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    cwd=self.config.cwd,
                    env=self.config.worker_env(dict(os.environ)),
                )
            except OSError as exc:
                raise WorkerStartError(f"failed to spawn render worker: {exc}", command) from exc
            if not proc.stdin or not proc.stdout or not proc.stderr:
                proc.kill()
                raise WorkerStartError("render worker stdio is unavailable", command)
            responses: queue.Queue[RenderResponse | None] = queue.Queue()
            self._stderr_tail.clear()
            self._proc = proc
            self._responses = responses
            threading.Thread(target=self._reader_loop, args=(proc, responses), daemon=True).start()
            self._stderr_thread = threading.Thread(target=self._stderr_loop, args=(proc,), daemon=True)
            self._stderr_thread.start()
            logger.info("Started render worker pid={} for {}", proc.pid, self.config.bundle_path)

    def _reader_loop(self, proc: subprocess.Popen[bytes], responses: queue.Queue[RenderResponse | None]) -> None:
        assert proc.stdout is not None
        while True:
            # Room for tag + JSON at the bound plus "\r\n".
            raw = proc.stdout.readline(MAX_LINE_BYTES + 2)
            if not raw:
                break
            if len(raw.rstrip(b"\r\n")) > MAX_LINE_BYTES:
                tagged = is_frame(raw)
                chunk = raw
                while chunk and not chunk.endswith(b"\n"):
                    chunk = proc.stdout.readline(MAX_LINE_BYTES + 2)
                if tagged:
                    logger.warning("Render worker sent a line over {} bytes", MAX_LINE_BYTES)
                    responses.put(RenderResponse(ok=False, error=RESPONSE_OVER_LIMIT_MESSAGE, kind=RenderFailed.kind))
                continue
            if not is_frame(raw):
                text = raw.decode("utf-8", errors="replace").strip()
                if text:
                    logger.debug("Ignored untagged worker output: {}", text[:200])
                continue
            try:
                payload = decode_frame(raw)
            except FrameDecodeError as exc:
                logger.warning("Render worker sent a malformed frame: {}", exc.message)
                responses.put(RenderResponse(ok=False, error=exc.message, kind=RenderFailed.kind))
                continue
            responses.put(decode_response_payload(payload))
        responses.put(None)

    def _stderr_loop(self, proc: subprocess.Popen[bytes]) -> None:
        assert proc.stderr is not None
        for raw in proc.stderr:
            text = raw.decode("utf-8", errors="replace").rstrip()
            if text:
                self._stderr_tail.append(text)
                logger.debug("[ssr-worker] {}", text)

    def send(self, page: dict[str, Any], *, timeout: float | None = None) -> RenderedPage:
        """Render one page through the worker."""
        if not isinstance(page, dict):
            raise RenderFailed(PAGE_REQUIRED_MESSAGE)
        line = encode_request_line(RenderRequest(page=page))
        deadline = timeout if timeout is not None else self.config.timeout_seconds
        with self._lock:
            self.start()
            proc, responses = self._proc, self._responses
            assert proc is not None and proc.stdin is not None and responses is not None
            try:
                proc.stdin.write(line)
                proc.stdin.flush()
            except OSError as exc:
                raise self._exited_error("render worker closed its input") from exc
            try:
                response = responses.get(timeout=deadline)
            except queue.Empty as exc:
                logger.warning("Render worker pid={} gave no response in {}s; killing it", proc.pid, deadline)
                self._kill()
                raise WorkerTimeoutError(deadline) from exc
            if response is None:
                raise self._exited_error("render worker exited before responding")
        return to_rendered_page(response)

    def _exited_error(self, message: str) -> WorkerExitedError:
        proc = self._proc
        returncode: int | None = None
        if proc is not None:
            with contextlib.suppress(subprocess.TimeoutExpired):
                returncode = proc.wait(timeout=self.config.shutdown_timeout_seconds)
            if self._stderr_thread is not None:
                self._stderr_thread.join(timeout=self.config.shutdown_timeout_seconds)
        stderr = "\n".join(self._stderr_tail)
        self._discard()
        return WorkerExitedError(message, returncode=returncode, stderr=stderr)

    def _kill(self) -> None:
        proc = self._proc
        if proc is None:
            return
        proc.kill()
        with contextlib.suppress(subprocess.TimeoutExpired):
            proc.wait(timeout=self.config.shutdown_timeout_seconds)
        self._discard()

    def _discard(self) -> None:
        proc = self._proc
        self._proc = None
        self._responses = None
        # stdout/stderr are left to the reader threads, which stop at EOF.
        if proc is not None and proc.stdin is not None:
            with contextlib.suppress(OSError):
                proc.stdin.close()

    def close(self) -> None:
        """Close the worker's input and wait for it to exit, escalating to kill."""
        with self._lock:
            proc = self._proc
            if not proc:
                return
            try:
                if proc.poll() is None:
                    if proc.stdin:
                        with contextlib.suppress(OSError):
                            proc.stdin.close()
                    proc.wait(timeout=self.config.shutdown_timeout_seconds)
            except subprocess.TimeoutExpired:
                proc.terminate()
                try:
                    proc.wait(timeout=self.config.shutdown_timeout_seconds)
                except subprocess.TimeoutExpired:
                    proc.kill()
                    proc.wait()
            finally:
                self._discard()

    def restart(self) -> None:
        with self._lock:
            self.close()
            self.start()

    def __enter__(self) -> RenderWorkerClient:
        self.start()
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
