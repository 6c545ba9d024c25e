"""Stream domain service - turns an uploaded file into a live broadcast."""

from __future__ import annotations

import asyncio
from pathlib import Path

from loguru import logger

from streamcast.app_config import get_app_environ_config
from streamcast.schemas import (
    AuthContext,
    PrivacyStatus,
    QualityProfile,
    StreamSession,
    StreamState,
)
from streamcast.services.integrations.broadcast_platform import BroadcastPlatform
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from ._compensation import CompensationCoordinator, RollbackList
from ._encoder import EncodeHandle, EncoderProcessManager
from ._events import EncodeEventChannel, TerminalEvent
from ._provisioner import ResourceProvisioner
from ._registry import SessionRegistry
from ._transitions import TransitionOrchestrator, TransitionPacing
from .stream_errors import StreamError
from .stream_models import StartStreamResult
from .stream_state_machine import StreamStateMachine


class StreamService:
    """Stream lifecycle orchestrator.

    One `start_stream` call drives a session from CREATED to LIVE:
    provision -> bind -> settle -> encode -> ready -> testing -> live.
    Any failure on the way rolls back what was created and removes the
    media file before the typed error is re-raised.
    """

    def __init__(
        self,
        platform: BroadcastPlatform,
        registry: SessionRegistry,
        encoder: EncoderProcessManager,
        pacing: TransitionPacing | None = None,
        upload_dir: Path | None = None,
    ):
        self._platform = platform
        self._registry = registry
        self._encoder = encoder
        self._provisioner = ResourceProvisioner(platform)
        self._transitions = TransitionOrchestrator(platform, pacing)
        self._compensation = CompensationCoordinator()
        self.upload_dir = upload_dir or Path(get_app_environ_config().UPLOAD_DIR)

    async def start_stream(
        self,
        title: str,
        media_path: Path,
        auth: AuthContext,
        privacy: PrivacyStatus = PrivacyStatus.PUBLIC,
        quality: QualityProfile | None = None,
    ) -> StartStreamResult:
        """Provision, bind, encode and go live.

        The media file is owned by the session from here on: it is deleted on
        failure, or once the encode process ends after a successful start.

        Raises:
            AppError: Empty title (E_INVALID_PARAMS)
            ProvisioningError | BindingError | EncoderStartError |
            EncoderRuntimeError | TransitionError: After compensation ran
        """
        session = StreamSession(title=title, media_path=media_path)
        rollback = RollbackList()

        try:
            if not title or not title.strip():
                raise AppError(
                    errcode=AppErrorCode.E_INVALID_PARAMS,
                    errmesg="Title is required",
                    status_code=HttpStatusCode.BAD_REQUEST,
                )

            logger.info(f"🚀 Starting stream {session.label} title={title!r}")
            pair = await self._provisioner.create_pair(auth, title, rollback, privacy, quality)
            session.id = pair.ingest_resource_id
            session.broadcast_id = pair.broadcast_id
            session.ingest_resource_id = pair.ingest_resource_id
            session.ingest_url = pair.ingest_url
            StreamStateMachine.advance(session, StreamState.PROVISIONED)

            await self._provisioner.bind(auth, pair.broadcast_id, pair.ingest_resource_id)
            StreamStateMachine.advance(session, StreamState.BOUND)

            await self._transitions.settle_before_encoder()

            handle = await self._encoder.start(media_path, pair.ingest_url, session)
            rollback.add(f"terminate encoder for stream {session.id}", lambda: self._encoder.terminate(handle))

            broadcast_url = await self._transitions.go_live(auth, session, handle)
        except (Exception, asyncio.CancelledError) as e:
            await self._fail(session, rollback, e)
            raise

        self._delete_media_when_done(handle)
        logger.info(f"✅ Stream {session.id} started: {broadcast_url}")
        return StartStreamResult(broadcast_url=broadcast_url, stream_id=session.id)

    async def _fail(self, session: StreamSession, rollback: RollbackList, error: BaseException) -> None:
        if isinstance(error, asyncio.CancelledError):
            logger.warning(f"Stream {session.label} start cancelled in state {session.state}")
        else:
            logger.error(f"❌ Stream {session.label} failed in state {session.state}: {error}")

        StreamStateMachine.advance(session, StreamState.FAILED)
        # Compensation must finish even if the caller keeps cancelling us.
        warnings = await asyncio.shield(self._compensation.compensate(rollback, session.media_path))
        if isinstance(error, StreamError):
            error.compensation_warnings.extend(warnings)
        elif warnings:
            logger.warning(f"{len(warnings)} compensation warning(s) for stream {session.label}")

    def _delete_media_when_done(self, handle: EncodeHandle) -> None:
        media_path = handle.session.media_path

        def _remove(event: TerminalEvent) -> None:
            try:
                media_path.unlink(missing_ok=True)
                logger.info(f"🗑️  Removed media file {media_path} after {type(event).__name__}")
            except OSError as e:
                logger.warning(f"Failed to remove media file {media_path}: {e}")

        handle.events.add_terminal_callback(_remove)

    async def stop_stream(self, stream_id: str) -> bool:
        """Kill the encode process of a stream. False for unknown or already-stopped ids."""
        return await self._encoder.stop(stream_id)

    def is_streaming(self, stream_id: str) -> bool:
        return self._encoder.is_active(stream_id)

    def get_events(self, stream_id: str) -> EncodeEventChannel | None:
        handle = self._registry.lookup(stream_id)
        return handle.events if handle else None

    def get_session(self, stream_id: str) -> StreamSession | None:
        handle = self._registry.lookup(stream_id)
        return handle.session if handle else None

    def cleanup_uploads(self) -> int:
        """Delete every file in the upload directory.

        Bulk maintenance operation: callers must not run it while streams are
        encoding, since their media files live in the same directory.

        Returns:
            Number of files removed
        """
        active = self._registry.active_ids()
        if active:
            logger.warning(f"Cleaning uploads while {len(active)} stream(s) are active: {active}")

        if not self.upload_dir.exists():
            return 0

        removed = 0
        try:
            for path in self.upload_dir.iterdir():
                if path.is_file():
                    path.unlink()
                    removed += 1
        except OSError as e:
            logger.exception(f"Failed to clean upload directory {self.upload_dir}")
            raise AppError(
                errcode=AppErrorCode.E_CLEANUP_FAILED,
                errmesg=f"Failed to clean up files: {e}",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            ) from e

        logger.info(f"🧹 Removed {removed} file(s) from {self.upload_dir}")
        return removed

    async def shutdown(self) -> None:
        await self._encoder.shutdown()
