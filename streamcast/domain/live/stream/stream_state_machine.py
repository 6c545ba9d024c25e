"""Stream state machine for managing state transitions."""

from datetime import datetime, timezone

from loguru import logger

from streamcast.schemas import StreamSession, StreamState


class StreamStateMachine:
    """State machine for managing stream session state transitions.

    State flow with triggers:
    - CREATED (request accepted) -> PROVISIONED (broadcast + ingest stream created) | FAILED
    - PROVISIONED -> BOUND (broadcast bound to ingest stream) | FAILED
    - BOUND -> ENCODING (encode process reported its first progress) | FAILED
    - ENCODING -> READY -> TESTING -> LIVE (each acknowledged by the platform)
    - ENCODING/READY/TESTING/LIVE -> ENDED (encode process exited normally or was stopped)
    - any non-terminal state -> FAILED (lifecycle step failed or encode process crashed)
    - ENDED/FAILED are terminal states
    """

    TRANSITIONS: dict[StreamState, set[StreamState]] = {
        StreamState.CREATED: {StreamState.PROVISIONED, StreamState.FAILED},
        StreamState.PROVISIONED: {StreamState.BOUND, StreamState.FAILED},
        StreamState.BOUND: {StreamState.ENCODING, StreamState.FAILED},
        StreamState.ENCODING: {StreamState.READY, StreamState.ENDED, StreamState.FAILED},
        StreamState.READY: {StreamState.TESTING, StreamState.ENDED, StreamState.FAILED},
        StreamState.TESTING: {StreamState.LIVE, StreamState.ENDED, StreamState.FAILED},
        StreamState.LIVE: {StreamState.ENDED, StreamState.FAILED},
        StreamState.ENDED: set(),
        StreamState.FAILED: set(),
    }

    TERMINAL_STATES: set[StreamState] = {StreamState.ENDED, StreamState.FAILED}

    @classmethod
    def can_transition(cls, current: StreamState, new: StreamState) -> bool:
        """Check if state transition is valid.

        Args:
            current: Current stream state
            new: Target state to transition to

        Returns:
            True if transition is valid, False otherwise
        """
        return new in cls.TRANSITIONS.get(current, set())

    @classmethod
    def is_terminal(cls, state: StreamState) -> bool:
        return state in cls.TERMINAL_STATES

    @classmethod
    def get_valid_transitions(cls, state: StreamState) -> set[StreamState]:
        return cls.TRANSITIONS.get(state, set())

    @classmethod
    def get_valid_sources(cls, target: StreamState) -> set[StreamState]:
        """Get all states that can transition to the target state."""
        return {state for state, targets in cls.TRANSITIONS.items() if target in targets}

    @classmethod
    def advance(cls, session: StreamSession, new_state: StreamState) -> bool:
        """Move a session to `new_state` if the transition is allowed.

        An invalid transition is logged and leaves the session untouched.

        Returns:
            True if the session state changed, False otherwise
        """
        if session.state == new_state:
            logger.debug(f"Stream {session.label} already in state {new_state}, skipping")
            return False

        if not cls.can_transition(session.state, new_state):
            logger.warning(
                f"Refusing invalid state transition for stream {session.label}: "
                f"{session.state} -> {new_state}"
            )
            return False

        previous = session.state
        session.state = new_state
        session.updated_at = datetime.now(timezone.utc)
        logger.info(f"Stream {session.label} transitioned {previous} -> {new_state}")
        return True
