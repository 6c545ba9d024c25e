from datetime import datetime, timezone
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field

from .stream_state import StreamState


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StreamSession(BaseModel):
    """One in-flight or completed stream attempt.

    `id` stays unset until the ingest stream exists on the platform; its
    platform id is then reused as the external handle for stop/status calls.
    """

    model_config = ConfigDict(validate_assignment=True)

    id: str | None = Field(default=None, description="Stream id (the ingest resource id)")
    title: str
    media_path: Path = Field(description="Local source file, owned by the session")

    broadcast_id: str | None = None
    ingest_resource_id: str | None = None
    ingest_url: str | None = Field(default=None, description="Full push endpoint incl. stream name")

    state: StreamState = StreamState.CREATED
    started_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def label(self) -> str:
        """Identifier for log lines, usable before the stream id is known."""
        return self.id or f"pending:{self.media_path.name}"


__all__ = ["StreamSession"]
