"""Tests for TransitionOrchestrator pacing and failure handling."""

import asyncio
import time
from pathlib import Path
from types import SimpleNamespace

import pytest

from streamcast.domain.live.stream import (
    EncodeEnded,
    EncodeEventChannel,
    EncodeFailed,
    EncoderRuntimeError,
    TransitionError,
    TransitionOrchestrator,
    TransitionPacing,
)
from streamcast.schemas import BroadcastStatus, StreamSession, StreamState
from streamcast.services.integrations.youtube_service import YouTubeApiError

# Event loop timers may fire up to one clock tick early.
TOLERANCE = 0.01


@pytest.fixture
def pacing() -> TransitionPacing:
    return TransitionPacing(
        bind_to_encoder=0.02,
        encoder_to_ready=0.1,
        ready_to_testing=0.08,
        testing_to_live=0.12,
    )


@pytest.fixture
def session(tmp_path: Path) -> StreamSession:
    return StreamSession(
        id="S1",
        title="Demo",
        media_path=tmp_path / "clip.mp4",
        broadcast_id="B1",
        ingest_resource_id="S1",
        ingest_url="rtmp://mock.ingest/live2/key-S1",
        state=StreamState.ENCODING,
    )


@pytest.fixture
def handle():
    """Minimal stand-in for an EncodeHandle: only the event channel is used."""
    return SimpleNamespace(events=EncodeEventChannel("S1"))


class TestGoLive:
    async def test_transitions_in_order_with_minimum_delays(self, platform, auth, session, handle, pacing):
        orchestrator = TransitionOrchestrator(platform, pacing)

        started = time.monotonic()
        url = await orchestrator.go_live(auth, session, handle)

        transitions = platform.transitions()
        assert [status for _, status, _ in transitions] == [
            BroadcastStatus.READY,
            BroadcastStatus.TESTING,
            BroadcastStatus.LIVE,
        ]
        assert all(broadcast_id == "B1" for broadcast_id, _, _ in transitions)

        ready_at, testing_at, live_at = (at for _, _, at in transitions)
        assert ready_at - started >= pacing.encoder_to_ready - TOLERANCE
        assert testing_at - ready_at >= pacing.ready_to_testing - TOLERANCE
        assert live_at - testing_at >= pacing.testing_to_live - TOLERANCE

        assert url == "https://youtube.com/watch?v=B1"
        assert session.state == StreamState.LIVE

    async def test_settle_before_encoder_waits(self, platform, pacing):
        orchestrator = TransitionOrchestrator(platform, pacing)

        started = time.monotonic()
        await orchestrator.settle_before_encoder()

        assert time.monotonic() - started >= pacing.bind_to_encoder - TOLERANCE

    @pytest.mark.parametrize(
        "failing,expected_calls",
        [
            (BroadcastStatus.READY, 1),
            (BroadcastStatus.TESTING, 2),
            (BroadcastStatus.LIVE, 3),
        ],
    )
    async def test_transition_failure_stops_sequence(
        self, platform, auth, session, handle, pacing, failing, expected_calls
    ):
        cause = YouTubeApiError("Invalid transition", http_status=403, reason="invalidTransition")
        platform.fail[f"transition:{failing.value}"] = cause
        orchestrator = TransitionOrchestrator(platform, pacing)

        with pytest.raises(TransitionError) as exc_info:
            await orchestrator.go_live(auth, session, handle)

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.errcode == "E_TRANSITION_FAILED"
        assert len(platform.transitions()) == expected_calls
        assert session.state != StreamState.LIVE

    async def test_encoder_crash_during_wait_aborts_immediately(self, platform, auth, session, handle):
        slow = TransitionPacing(encoder_to_ready=5.0)
        orchestrator = TransitionOrchestrator(platform, slow)
        crash = EncoderRuntimeError("exited with code 1", stream_id="S1", returncode=1)
        loop = asyncio.get_running_loop()
        loop.call_later(
            0.05, handle.events.publish, EncodeFailed(stream_id="S1", error=crash, returncode=1)
        )

        started = time.monotonic()
        with pytest.raises(EncoderRuntimeError) as exc_info:
            await orchestrator.go_live(auth, session, handle)

        assert exc_info.value is crash
        assert time.monotonic() - started < 2.0
        assert platform.transitions() == []

    async def test_encoder_stopped_during_wait_aborts(self, platform, auth, session, handle):
        slow = TransitionPacing(encoder_to_ready=0.01, ready_to_testing=5.0)
        orchestrator = TransitionOrchestrator(platform, slow)
        loop = asyncio.get_running_loop()
        loop.call_later(
            0.1, handle.events.publish, EncodeEnded(stream_id="S1", returncode=-9, stopped=True)
        )

        with pytest.raises(EncoderRuntimeError, match="exited before the broadcast went live"):
            await orchestrator.go_live(auth, session, handle)

        assert [status for _, status, _ in platform.transitions()] == [BroadcastStatus.READY]

    async def test_encoder_exit_while_transition_in_flight(self, platform, auth, session, handle):
        pacing = TransitionPacing(encoder_to_ready=0, ready_to_testing=0, testing_to_live=0)
        orchestrator = TransitionOrchestrator(platform, pacing)
        crash = EncoderRuntimeError("exited with code 1", stream_id="S1", returncode=1)
        original_transition = platform.transition

        async def transition(auth_ctx, broadcast_id, status):
            await original_transition(auth_ctx, broadcast_id, status)
            if status == BroadcastStatus.LIVE:
                handle.events.publish(EncodeFailed(stream_id="S1", error=crash, returncode=1))

        platform.transition = transition

        with pytest.raises(EncoderRuntimeError) as exc_info:
            await orchestrator.go_live(auth, session, handle)

        assert exc_info.value is crash
        assert session.state == StreamState.TESTING

    async def test_already_exited_encoder_rejected_before_transition(self, platform, auth, session, handle):
        handle.events.publish(EncodeEnded(stream_id="S1", returncode=0))
        orchestrator = TransitionOrchestrator(platform, TransitionPacing(encoder_to_ready=0))

        with pytest.raises(EncoderRuntimeError):
            await orchestrator.go_live(auth, session, handle)

        assert platform.transitions() == []


class TestIngestPoll:
    async def test_waits_until_ingest_active(self, platform, auth, session, handle):
        pacing = TransitionPacing(
            encoder_to_ready=0,
            ready_to_testing=0,
            testing_to_live=0,
            ingest_poll_enabled=True,
            ingest_poll_interval=0.02,
            ingest_poll_timeout=5,
        )
        platform.ingest_statuses = ["ready", "inactive", "active"]

        await TransitionOrchestrator(platform, pacing).go_live(auth, session, handle)

        ops = platform.ops()
        assert ops[:4] == ["get_ingest_status"] * 3 + ["transition"]

    async def test_poll_timeout_proceeds_with_transitions(self, platform, auth, session, handle):
        pacing = TransitionPacing(
            encoder_to_ready=0,
            ready_to_testing=0,
            testing_to_live=0,
            ingest_poll_enabled=True,
            ingest_poll_interval=0.02,
            ingest_poll_timeout=0.1,
        )
        platform.ingest_statuses = ["ready"] * 100

        await TransitionOrchestrator(platform, pacing).go_live(auth, session, handle)

        assert session.state == StreamState.LIVE
        assert platform.ops().count("get_ingest_status") >= 2

    async def test_poll_errors_are_tolerated(self, platform, auth, session, handle):
        pacing = TransitionPacing(
            encoder_to_ready=0,
            ready_to_testing=0,
            testing_to_live=0,
            ingest_poll_enabled=True,
            ingest_poll_interval=0.02,
            ingest_poll_timeout=0.1,
        )
        platform.fail["get_ingest_status"] = YouTubeApiError("backend error", http_status=500)

        await TransitionOrchestrator(platform, pacing).go_live(auth, session, handle)

        assert session.state == StreamState.LIVE

    async def test_poll_disabled_by_default(self, platform, auth, session, handle):
        pacing = TransitionPacing(encoder_to_ready=0, ready_to_testing=0, testing_to_live=0)

        await TransitionOrchestrator(platform, pacing).go_live(auth, session, handle)

        assert "get_ingest_status" not in platform.ops()


class TestPacingFromConfig:
    def test_defaults_match_minimum_delays(self):
        pacing = TransitionPacing()

        assert pacing.bind_to_encoder == 2.0
        assert pacing.encoder_to_ready == 5.0
        assert pacing.ready_to_testing == 3.0
        assert pacing.testing_to_live == 5.0
        assert pacing.ingest_poll_enabled is False

    def test_from_config(self):
        pacing = TransitionPacing.from_config()

        assert pacing.encoder_to_ready >= 0
        assert pacing.ingest_poll_interval > 0
