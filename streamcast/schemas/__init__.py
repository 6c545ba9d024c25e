"""Pydantic schemas for stream sessions and remote platform resources."""

from .auth import AuthContext
from .broadcast import BroadcastSpec, ChannelProfile, CreatedIngest, IngestSpec, QualityProfile
from .stream_session import StreamSession
from .stream_state import BroadcastStatus, PrivacyStatus, StreamState

__all__ = [
    "AuthContext",
    "BroadcastSpec",
    "BroadcastStatus",
    "ChannelProfile",
    "CreatedIngest",
    "IngestSpec",
    "PrivacyStatus",
    "QualityProfile",
    "StreamSession",
    "StreamState",
]
