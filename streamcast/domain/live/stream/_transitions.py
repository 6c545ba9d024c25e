"""Paced transitions of the remote broadcast: ready -> testing -> live.

The platform rejects transitions issued before it has seen enough ingest
data, so every step waits a minimum delay after the previous confirmed one.
The encode process is watched during every wait: if it exits, going live is
abandoned immediately.
"""

from __future__ import annotations

import asyncio
import time

from loguru import logger
from pydantic import BaseModel, Field

from streamcast.app_config import get_app_environ_config
from streamcast.schemas import AuthContext, BroadcastStatus, StreamSession, StreamState
from streamcast.services.integrations.broadcast_platform import BroadcastPlatform

from ._encoder import EncodeHandle
from ._events import EncodeFailed, TerminalEvent
from .stream_errors import EncoderRuntimeError, TransitionError
from .stream_state_machine import StreamStateMachine

INGEST_ACTIVE_STATUS = "active"


class TransitionPacing(BaseModel):
    """Minimum delays (seconds) between lifecycle steps."""

    bind_to_encoder: float = Field(default=2.0, ge=0)
    encoder_to_ready: float = Field(default=5.0, ge=0)
    ready_to_testing: float = Field(default=3.0, ge=0)
    testing_to_live: float = Field(default=5.0, ge=0)

    ingest_poll_enabled: bool = False
    ingest_poll_interval: float = Field(default=2.0, gt=0)
    ingest_poll_timeout: float = Field(default=60.0, ge=0)

    @classmethod
    def from_config(cls) -> "TransitionPacing":
        cfg = get_app_environ_config()
        return cls(
            bind_to_encoder=cfg.TRANSITION_BIND_DELAY_SECONDS,
            encoder_to_ready=cfg.TRANSITION_READY_DELAY_SECONDS,
            ready_to_testing=cfg.TRANSITION_TESTING_DELAY_SECONDS,
            testing_to_live=cfg.TRANSITION_LIVE_DELAY_SECONDS,
            ingest_poll_enabled=cfg.INGEST_POLL_ENABLED,
            ingest_poll_interval=cfg.INGEST_POLL_INTERVAL_SECONDS,
            ingest_poll_timeout=cfg.INGEST_POLL_TIMEOUT_SECONDS,
        )


class TransitionOrchestrator:
    def __init__(self, platform: BroadcastPlatform, pacing: TransitionPacing | None = None):
        self._platform = platform
        self.pacing = pacing or TransitionPacing.from_config()

    async def settle_before_encoder(self) -> None:
        """Give the platform time to register the bind before media arrives."""
        await asyncio.sleep(self.pacing.bind_to_encoder)

    async def go_live(self, auth: AuthContext, session: StreamSession, handle: EncodeHandle) -> str:
        """Drive the broadcast to LIVE.

        Args:
            auth: Caller credentials
            session: Session in ENCODING state with a broadcast id
            handle: The confirmed encode process feeding the ingest

        Returns:
            The public broadcast URL

        Raises:
            TransitionError: If a transition call failed
            EncoderRuntimeError: If the encode process exited while waiting
        """
        assert session.broadcast_id is not None
        pacing = self.pacing

        await self._settle(pacing.encoder_to_ready, handle)
        if pacing.ingest_poll_enabled:
            await self._wait_for_ingest_active(auth, session, handle)

        await self._transition(auth, session, handle, BroadcastStatus.READY)
        await self._settle(pacing.ready_to_testing, handle)
        await self._transition(auth, session, handle, BroadcastStatus.TESTING)
        await self._settle(pacing.testing_to_live, handle)
        await self._transition(auth, session, handle, BroadcastStatus.LIVE)

        url = self._platform.broadcast_url(session.broadcast_id)
        logger.info(f"🔴 Stream {session.label} is live at {url}")
        return url

    async def _transition(
        self,
        auth: AuthContext,
        session: StreamSession,
        handle: EncodeHandle,
        status: BroadcastStatus,
    ) -> None:
        if handle.events.terminal is not None:
            raise self._encoder_exited(handle.events.terminal)

        try:
            await self._platform.transition(auth, session.broadcast_id, status)
        except Exception as e:
            raise TransitionError(
                f"Failed to transition broadcast {session.broadcast_id} to {status}: {e}",
                stream_id=session.id,
            ) from e

        # The encoder may have exited while the call was in flight.
        if handle.events.terminal is not None:
            raise self._encoder_exited(handle.events.terminal)

        StreamStateMachine.advance(session, StreamState(status.value))

    async def _settle(self, delay: float, handle: EncodeHandle) -> None:
        """Sleep `delay` seconds, aborting as soon as the encode process exits."""
        try:
            terminal = await asyncio.wait_for(handle.events.wait_terminal(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise self._encoder_exited(terminal)

    def _encoder_exited(self, terminal: TerminalEvent) -> EncoderRuntimeError:
        if isinstance(terminal, EncodeFailed):
            return terminal.error
        return EncoderRuntimeError(
            f"Encoder for stream {terminal.stream_id} exited before the broadcast went live "
            f"(returncode={terminal.returncode}, stopped={terminal.stopped})",
            stream_id=terminal.stream_id,
            returncode=terminal.returncode,
        )

    async def _wait_for_ingest_active(
        self,
        auth: AuthContext,
        session: StreamSession,
        handle: EncodeHandle,
    ) -> None:
        """Poll the ingest stream until the platform reports it active.

        Gives up after the poll timeout and proceeds; the ready transition
        itself then decides whether the platform accepts the stream.
        """
        pacing = self.pacing
        deadline = time.monotonic() + pacing.ingest_poll_timeout
        attempt = 0
        while True:
            attempt += 1
            try:
                status = await self._platform.get_ingest_status(auth, session.ingest_resource_id)
            except Exception as e:
                logger.warning(f"Ingest status check {attempt} for stream {session.label} failed: {e}")
                status = None

            if status == INGEST_ACTIVE_STATUS:
                logger.info(f"Ingest for stream {session.label} active after {attempt} check(s)")
                return

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                logger.warning(
                    f"Ingest for stream {session.label} not active after {attempt} check(s) "
                    f"(last status={status}), proceeding with transitions"
                )
                return

            logger.debug(f"Ingest for stream {session.label} status={status}, checking again")
            await self._settle(min(pacing.ingest_poll_interval, remaining), handle)
