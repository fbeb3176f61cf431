"""Render worker process: framed requests on stdin, framed responses on stdout.

Requests are handled strictly one at a time in arrival order. A reader task
keeps buffering input while a render is in progress.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import sys
from typing import BinaryIO

import typer
from loguru import logger

from ssrbridge.cli.shared.logging_utils import configure_stderr_logging, ensure_rotating_log_file
from ssrbridge.config.schema import WorkerSettings
from ssrbridge.protocol import MAX_LINE_BYTES
from ssrbridge.protocol.stream import OversizedLineError, read_frame_line
from ssrbridge.render import RenderError

from .session import WorkerSession, WorkerState


async def serve(session: WorkerSession, reader: asyncio.StreamReader, out: BinaryIO) -> None:
    """Answer requests until the input closes, then finish what was queued."""
    queue: asyncio.Queue[bytes | OversizedLineError | None] = asyncio.Queue()

    async def pump() -> None:
        try:
            while True:
                try:
                    line = await read_frame_line(reader)
                except OversizedLineError as exc:
                    queue.put_nowait(exc)
                    continue
                if not line:
                    break
                queue.put_nowait(line)
        finally:
            queue.put_nowait(None)

    pump_task = asyncio.create_task(pump())
    try:
        while True:
            item = await queue.get()
            if item is None:
                break
            line = item.prefix if isinstance(item, OversizedLineError) else item
            try:
                if isinstance(item, OversizedLineError):
                    data = session.oversized_request(item.prefix)
                else:
                    data = await session.handle_line(item)
            except Exception as exc:
                logger.opt(exception=exc).error("Unhandled error while answering a request")
                data = session.internal_failure(line, exc)
            if data is None:
                continue
            try:
                out.write(data)
                out.flush()
            except (BrokenPipeError, ConnectionResetError):
                logger.warning("Protocol stream closed by the client")
                break
    finally:
        session.state = WorkerState.TERMINATED
        pump_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await pump_task


def isolate_stdout() -> BinaryIO:
    """Reserve the original stdout for frames and point fd 1 and sys.stdout at stderr."""
    sys.stdout.flush()
    protocol_fd = os.dup(sys.stdout.fileno())
    os.dup2(sys.stderr.fileno(), sys.stdout.fileno())
    sys.stdout = sys.stderr
    return os.fdopen(protocol_fd, "wb")


async def open_stdin_reader(limit: int = MAX_LINE_BYTES) -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=limit)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)
    return reader


async def _run(session: WorkerSession, out: BinaryIO, *, preload: bool) -> int:
    if preload:
        try:
            handle = session.preload()
        except RenderError as err:
            logger.error("Failed to pre-load SSR module: {}", err.message)
            return 1
        logger.info("Pre-loaded {} (export: {})", handle.path, handle.export)
    reader = await open_stdin_reader()
    await serve(session, reader, out)
    logger.debug("Input closed after {} request(s)", session.handled)
    return 0


def run_worker(bundle_path: str, settings: WorkerSettings | None = None) -> int:
    """Run the worker on this process's stdio and return its exit status."""
    settings = settings or WorkerSettings()
    configure_stderr_logging(settings.log_level)
    if settings.log_file:
        ensure_rotating_log_file(settings.log_file, settings.log_level)
    out = isolate_stdout()
    if not settings.production:
        # Renders may import bundle modules lazily, outside load_bundle.
        sys.dont_write_bytecode = True
    session = WorkerSession(bundle_path, production=settings.production, debug=settings.debug)
    logger.info("Render worker started (bundle={}, mode={})", bundle_path, settings.env)
    try:
        return asyncio.run(_run(session, out, preload=settings.production and settings.preload))
    finally:
        out.close()


def worker_command(
    bundle: str = typer.Argument(..., metavar="BUNDLE", help="Path to the rendering bundle module"),
) -> None:
    """Serve render requests for BUNDLE over stdin/stdout."""
    raise typer.Exit(run_worker(bundle))


def main() -> None:
    typer.run(worker_command)
