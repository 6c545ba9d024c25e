"""Common enums used across schemas."""

from enum import Enum


class StreamState(str, Enum):
    """Stream session lifecycle states.

    State Transition Flow:

    CREATED → PROVISIONED → BOUND → ENCODING → READY → TESTING → LIVE → ENDED
       ↓           ↓          ↓        ↓          ↓        ↓        ↓
     FAILED      FAILED     FAILED  FAILED/ENDED  ...    ...     FAILED

    State Descriptions:
    - CREATED: Request accepted, nothing exists remotely yet.
    - PROVISIONED: Broadcast and ingest stream both created on the platform.
    - BOUND: Broadcast bound to the ingest stream.
    - ENCODING: Local encode process confirmed pushing to the ingest URL.
    - READY / TESTING / LIVE: Remote broadcast lifecycle, each acknowledged by the platform.
    - ENDED: Encode process exited normally or was stopped on request.
    - FAILED: A lifecycle step failed, or the encode process exited abnormally.

    Terminal states (no further transitions): ENDED, FAILED
    """

    CREATED = "created"
    PROVISIONED = "provisioned"
    BOUND = "bound"
    ENCODING = "encoding"
    READY = "ready"
    TESTING = "testing"
    LIVE = "live"
    ENDED = "ended"
    FAILED = "failed"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def active_states(cls) -> list["StreamState"]:
        """States in which an encode process is registered for the session."""
        return [
            StreamState.ENCODING,
            StreamState.READY,
            StreamState.TESTING,
            StreamState.LIVE,
        ]


class BroadcastStatus(str, Enum):
    """Remote broadcast lifecycle statuses accepted by the transition call."""

    READY = "ready"
    TESTING = "testing"
    LIVE = "live"

    def __str__(self) -> str:
        return self.value


class PrivacyStatus(str, Enum):
    PUBLIC = "public"
    UNLISTED = "unlisted"
    PRIVATE = "private"

    def __str__(self) -> str:
        return self.value


__all__ = ["BroadcastStatus", "PrivacyStatus", "StreamState"]
