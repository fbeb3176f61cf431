"""Bounded line reading over asyncio streams."""

from __future__ import annotations

import asyncio

from .framing import TAG


class OversizedLineError(Exception):
    """An input line exceeded the reader's limit and was discarded."""

    def __init__(self, prefix: bytes):
        super().__init__("line exceeds the reader limit")
        self.prefix = prefix


async def read_frame_line(reader: asyncio.StreamReader) -> bytes:
    """Read one line including its newline; ``b""`` at end of input.

    A line longer than the reader's limit is drained up to its newline and
    reported through OversizedLineError carrying its first bytes, so the next
    read starts on a line boundary.
    """
    try:
        return await reader.readuntil(b"\n")
    except asyncio.IncompleteReadError as exc:
        return exc.partial
    except asyncio.LimitOverrunError as exc:
        prefix = (await reader.readexactly(exc.consumed))[: len(TAG)]
    while True:
        try:
            await reader.readuntil(b"\n")
            break
        except asyncio.IncompleteReadError:
            break
        except asyncio.LimitOverrunError as more:
            await reader.readexactly(more.consumed)
    raise OversizedLineError(prefix)
