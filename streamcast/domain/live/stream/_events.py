"""Encode process events and the per-process event channel.

Each encode process owns one `EncodeEventChannel`. The channel fans events out to
any number of subscribers and always ends with exactly one terminal event
(`EncodeEnded` or `EncodeFailed`).
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone

from loguru import logger

from .stream_errors import EncoderRuntimeError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class EncodeStarted:
    stream_id: str
    pid: int
    at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class EncodeProgress:
    """One `-progress` report block."""

    stream_id: str
    frame: int | None = None
    fps: float | None = None
    bitrate: str | None = None
    total_size: int | None = None
    out_time: str | None = None
    speed: str | None = None
    at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class EncodeEnded:
    """The process exited normally, or was killed on request (`stopped=True`)."""

    stream_id: str
    returncode: int | None
    stopped: bool = False
    at: datetime = field(default_factory=_utcnow)


@dataclass(frozen=True)
class EncodeFailed:
    stream_id: str
    error: EncoderRuntimeError
    returncode: int | None
    at: datetime = field(default_factory=_utcnow)


EncodeEvent = EncodeStarted | EncodeProgress | EncodeEnded | EncodeFailed
TerminalEvent = EncodeEnded | EncodeFailed


class EncodeEventChannel:
    """Multi-consumer event stream for a single encode process."""

    def __init__(self, stream_id: str):
        self.stream_id = stream_id
        self._subscribers: list[asyncio.Queue[EncodeEvent]] = []
        self._terminal: TerminalEvent | None = None
        self._done = asyncio.Event()
        self._terminal_callbacks: list[Callable[[TerminalEvent], None]] = []
        self.last_progress: EncodeProgress | None = None

    @property
    def terminal(self) -> TerminalEvent | None:
        return self._terminal

    @property
    def closed(self) -> bool:
        return self._terminal is not None

    def publish(self, event: EncodeEvent) -> None:
        if self._terminal is not None:
            logger.debug(f"Dropping {type(event).__name__} for stream {self.stream_id}: channel closed")
            return

        if isinstance(event, EncodeProgress):
            self.last_progress = event

        for queue in list(self._subscribers):
            queue.put_nowait(event)

        if isinstance(event, (EncodeEnded, EncodeFailed)):
            self._terminal = event
            self._done.set()
            self._run_terminal_callbacks(event)

    def add_terminal_callback(self, callback: Callable[[TerminalEvent], None]) -> None:
        """Run `callback` once the terminal event is published (immediately if already closed)."""
        if self._terminal is not None:
            self._invoke(callback, self._terminal)
            return
        self._terminal_callbacks.append(callback)

    def _run_terminal_callbacks(self, event: TerminalEvent) -> None:
        callbacks, self._terminal_callbacks = self._terminal_callbacks, []
        for callback in callbacks:
            self._invoke(callback, event)

    def _invoke(self, callback: Callable[[TerminalEvent], None], event: TerminalEvent) -> None:
        try:
            callback(event)
        except Exception:
            logger.exception(f"Terminal callback failed for stream {self.stream_id}")

    async def wait_terminal(self) -> TerminalEvent:
        await self._done.wait()
        assert self._terminal is not None
        return self._terminal

    async def subscribe(self) -> AsyncIterator[EncodeEvent]:
        """Yield events from now until (and including) the terminal event."""
        if self._terminal is not None:
            yield self._terminal
            return

        queue: asyncio.Queue[EncodeEvent] = asyncio.Queue()
        self._subscribers.append(queue)
        try:
            while True:
                event = await queue.get()
                yield event
                if isinstance(event, (EncodeEnded, EncodeFailed)):
                    return
        finally:
            self._subscribers.remove(queue)
