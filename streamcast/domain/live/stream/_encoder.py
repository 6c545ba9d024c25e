"""Encoder process manager.

Runs one ffmpeg process per stream, pushing a looped local media file to the
ingest URL in real time. Startup is confirmed by the first `-progress` report
on stdout rather than by the spawn itself, so a process that dies on a bad
input or an unreachable ingest endpoint never counts as started.
"""

from __future__ import annotations

import asyncio
import shlex
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from loguru import logger

from streamcast.app_config import get_app_environ_config
from streamcast.schemas import StreamSession, StreamState

from ._events import (
    EncodeEnded,
    EncodeEventChannel,
    EncodeFailed,
    EncodeProgress,
    EncodeStarted,
)
from ._registry import SessionRegistry
from .stream_errors import EncoderRuntimeError, EncoderStartError
from .stream_state_machine import StreamStateMachine

STDERR_TAIL_LINES = 20

CommandBuilder = Callable[[Path, str], list[str]]


def redact_ingest_url(url: str) -> str:
    """Hide the stream key (last path segment) of an ingest URL.

    Example:
        >>> redact_ingest_url("rtmp://a.rtmp.youtube.com/live2/abcd-efgh")
        'rtmp://a.rtmp.youtube.com/live2/****'
    """
    base, sep, key = url.rpartition("/")
    if not sep or not key or base.endswith("/"):
        return url
    return f"{base}/****"


class FFmpegCommand:
    """Fixed encode policy for pushing a file to an RTMP ingest."""

    INPUT_ARGS = ["-re", "-stream_loop", "-1"]
    VIDEO_ARGS = [
        "-c:v", "libx264",
        "-preset", "veryfast",
        "-tune", "zerolatency",
        "-profile:v", "main",
        "-b:v", "2500k",
        "-maxrate", "2500k",
        "-bufsize", "5000k",
        "-pix_fmt", "yuv420p",
        "-keyint_min", "60",
        "-g", "60",
        "-r", "30",
    ]  # fmt: skip
    AUDIO_ARGS = ["-c:a", "aac", "-b:a", "128k", "-ar", "44100", "-ac", "2"]

    def __init__(self, ffmpeg_binary: str = "ffmpeg"):
        self.ffmpeg_binary = ffmpeg_binary

    def build(self, media_path: Path, ingest_url: str) -> list[str]:
        return [
            self.ffmpeg_binary,
            "-hide_banner",
            "-nostats",
            "-progress",
            "pipe:1",
            *self.INPUT_ARGS,
            "-i",
            str(media_path),
            *self.VIDEO_ARGS,
            *self.AUDIO_ARGS,
            "-f",
            "flv",
            ingest_url,
        ]


@dataclass
class EncodeHandle:
    """A running encode process and everything needed to supervise it."""

    session: StreamSession
    process: asyncio.subprocess.Process
    events: EncodeEventChannel
    stderr_tail: deque[str] = field(default_factory=lambda: deque(maxlen=STDERR_TAIL_LINES))
    stop_requested: bool = False
    confirmed: asyncio.Future[None] | None = field(default=None, repr=False)
    pump: asyncio.Task[int] | None = field(default=None, repr=False)
    supervisor: asyncio.Task[None] | None = field(default=None, repr=False)

    @property
    def stream_id(self) -> str:
        return self.events.stream_id

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def returncode(self) -> int | None:
        return self.process.returncode

    def stderr_summary(self) -> str:
        return "\n".join(self.stderr_tail) or "<no stderr output>"


def _to_int(value: str | None) -> int | None:
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _to_float(value: str | None) -> float | None:
    try:
        return float(value) if value is not None else None
    except ValueError:
        return None


class EncoderProcessManager:
    """Starts, supervises and kills encode processes."""

    def __init__(
        self,
        registry: SessionRegistry,
        command_builder: CommandBuilder | None = None,
        startup_timeout: float | None = None,
    ):
        cfg = get_app_environ_config()
        self._registry = registry
        self._command_builder = command_builder or FFmpegCommand(cfg.FFMPEG_BINARY).build
        self._startup_timeout = (
            startup_timeout if startup_timeout is not None else cfg.ENCODER_STARTUP_TIMEOUT_SECONDS
        )

    async def start(self, media_path: Path, ingest_url: str, session: StreamSession) -> EncodeHandle:
        """Spawn the encode process and wait until it reports progress.

        Args:
            media_path: Local source file
            ingest_url: Full push URL including the stream key
            session: Session the process belongs to; its id keys the registry

        Returns:
            The registered handle, with the session moved to ENCODING

        Raises:
            EncoderStartError: Missing file, duplicate id, spawn failure, early
                exit or no progress within the startup timeout
        """
        stream_id = session.id
        if not stream_id:
            raise EncoderStartError("Cannot start encoder for a stream without an id")
        if not media_path.exists():
            raise EncoderStartError(f"Video file not found: {media_path}", stream_id=stream_id)
        if stream_id in self._registry:
            raise EncoderStartError(
                f"Stream {stream_id} already has an active encode process", stream_id=stream_id
            )

        command = self._command_builder(media_path, ingest_url)
        safe_command = [redact_ingest_url(arg) if arg == ingest_url else arg for arg in command]
        logger.info(f"🎬 Starting encoder for stream {stream_id}: {shlex.join(safe_command)}")

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise EncoderStartError(f"Failed to spawn encoder: {e}", stream_id=stream_id) from e

        loop = asyncio.get_running_loop()
        handle = EncodeHandle(
            session=session,
            process=process,
            events=EncodeEventChannel(stream_id),
            confirmed=loop.create_future(),
        )
        handle.pump = asyncio.create_task(self._pump(handle))

        try:
            await asyncio.wait(
                {handle.confirmed, handle.pump},
                timeout=self._startup_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await self._kill(handle)
            raise

        if not handle.confirmed.done():
            timed_out = not handle.pump.done()
            await self._kill(handle)
            if timed_out:
                reason = f"no progress reported within {self._startup_timeout}s"
            else:
                reason = f"exited with code {handle.returncode} before reporting progress"
            raise EncoderStartError(
                f"Encoder for stream {stream_id} {reason}: {handle.stderr_summary()}",
                stream_id=stream_id,
            )

        try:
            self._registry.register(stream_id, handle)
        except KeyError as e:
            await self._kill(handle)
            raise EncoderStartError(str(e), stream_id=stream_id) from e

        StreamStateMachine.advance(session, StreamState.ENCODING)
        handle.supervisor = asyncio.create_task(self._supervise(handle))
        logger.info(f"✅ Encoder confirmed for stream {stream_id} (pid={handle.pid})")
        return handle

    async def stop(self, stream_id: str) -> bool:
        """Kill the encode process of a stream.

        Returns:
            True if a process was found and killed, False for unknown ids
            (including a second stop of the same id)
        """
        handle = self._registry.unregister(stream_id)
        if handle is None:
            logger.info(f"No active encode process for stream {stream_id}")
            return False

        logger.info(f"🛑 Stopping encoder for stream {stream_id} (pid={handle.pid})")
        handle.stop_requested = True
        self._kill_process(handle)
        if handle.supervisor is not None:
            await handle.supervisor
        return True

    async def terminate(self, handle: EncodeHandle) -> None:
        """Kill a specific handle and wait until its terminal event was published."""
        handle.stop_requested = True
        self._registry.unregister(handle.stream_id, handle)
        self._kill_process(handle)
        if handle.supervisor is not None:
            await handle.supervisor
        else:
            await self._kill(handle)

    def is_active(self, stream_id: str) -> bool:
        return stream_id in self._registry

    async def shutdown(self) -> None:
        stream_ids = self._registry.active_ids()
        if not stream_ids:
            return
        logger.info(f"Shutting down {len(stream_ids)} encode process(es)")
        await asyncio.gather(*(self.stop(stream_id) for stream_id in stream_ids))

    # ==================== PROCESS I/O ====================

    def _kill_process(self, handle: EncodeHandle) -> None:
        if handle.process.returncode is not None:
            return
        try:
            handle.process.kill()
        except ProcessLookupError:
            pass

    async def _kill(self, handle: EncodeHandle) -> None:
        self._kill_process(handle)
        if handle.pump is None:
            return
        try:
            await handle.pump
        except Exception:
            logger.exception(f"Encoder output reader failed for stream {handle.stream_id}")

    async def _pump(self, handle: EncodeHandle) -> int:
        """Read progress from stdout until EOF; return the exit code."""
        stderr_task = asyncio.create_task(self._drain_stderr(handle))
        block: dict[str, str] = {}
        assert handle.process.stdout is not None
        async for raw in handle.process.stdout:
            line = raw.decode(errors="replace").strip()
            key, sep, value = line.partition("=")
            if not sep:
                continue
            if key == "progress":
                self._on_progress(handle, block)
                block = {}
            else:
                block[key] = value
        await stderr_task
        return await handle.process.wait()

    async def _drain_stderr(self, handle: EncodeHandle) -> None:
        assert handle.process.stderr is not None
        async for raw in handle.process.stderr:
            line = raw.decode(errors="replace").rstrip()
            if not line:
                continue
            handle.stderr_tail.append(line)
            logger.debug(f"ffmpeg[{handle.stream_id}]: {line}")

    def _on_progress(self, handle: EncodeHandle, block: dict[str, str]) -> None:
        if handle.confirmed is not None and not handle.confirmed.done():
            handle.events.publish(EncodeStarted(stream_id=handle.stream_id, pid=handle.pid))
            handle.confirmed.set_result(None)

        handle.events.publish(
            EncodeProgress(
                stream_id=handle.stream_id,
                frame=_to_int(block.get("frame")),
                fps=_to_float(block.get("fps")),
                bitrate=block.get("bitrate"),
                total_size=_to_int(block.get("total_size")),
                out_time=block.get("out_time"),
                speed=block.get("speed"),
            )
        )

    async def _supervise(self, handle: EncodeHandle) -> None:
        """Wait for the process to exit and publish its terminal event."""
        stream_id = handle.stream_id
        session = handle.session
        try:
            assert handle.pump is not None
            returncode = await handle.pump
        except Exception as e:
            logger.exception(f"Encoder supervision failed for stream {stream_id}")
            returncode = handle.returncode
            pump_error: Exception | None = e
        else:
            pump_error = None

        self._registry.unregister(stream_id, handle)

        if handle.stop_requested or (returncode == 0 and pump_error is None):
            if not StreamStateMachine.is_terminal(session.state):
                StreamStateMachine.advance(session, StreamState.ENDED)
            logger.info(
                f"Encoder for stream {stream_id} ended "
                f"(returncode={returncode}, stopped={handle.stop_requested})"
            )
            handle.events.publish(
                EncodeEnded(stream_id=stream_id, returncode=returncode, stopped=handle.stop_requested)
            )
            return

        error = EncoderRuntimeError(
            f"Encoder for stream {stream_id} exited with code {returncode}: {handle.stderr_summary()}",
            stream_id=stream_id,
            returncode=returncode,
        )
        if pump_error is not None:
            error.__cause__ = pump_error
        if not StreamStateMachine.is_terminal(session.state):
            StreamStateMachine.advance(session, StreamState.FAILED)
        logger.error(f"❌ {error.errmesg}")
        handle.events.publish(EncodeFailed(stream_id=stream_id, error=error, returncode=returncode))
