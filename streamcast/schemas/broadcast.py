"""Platform-agnostic specs for the remote broadcast and ingest resources."""

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from .stream_state import PrivacyStatus


class QualityProfile(BaseModel):
    """Ingest quality settings; the default targets a 1080p RTMP ingest."""

    format: str = "1080p"
    ingestion_type: str = "rtmp"
    resolution: str = "variable"
    frame_rate: str = "variable"


class BroadcastSpec(BaseModel):
    """Remote broadcast configuration.

    Auto start/stop, DVR, embedding and recording from start are fixed policy;
    only title and privacy vary per request.
    """

    title: str = Field(min_length=1)
    description: str = ""
    privacy: PrivacyStatus = PrivacyStatus.PUBLIC
    scheduled_start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    made_for_kids: bool = False
    enable_auto_start: bool = True
    enable_auto_stop: bool = True
    enable_dvr: bool = True
    enable_embed: bool = True
    record_from_start: bool = True
    enable_monitor_stream: bool = True
    broadcast_stream_delay_ms: int = 0

    @classmethod
    def for_title(cls, title: str, privacy: PrivacyStatus = PrivacyStatus.PUBLIC) -> "BroadcastSpec":
        return cls(title=title, description=f"Stream of {title}", privacy=privacy)


class IngestSpec(BaseModel):
    """Remote ingest stream configuration."""

    title: str = "Stream"
    description: str = ""
    quality: QualityProfile = Field(default_factory=QualityProfile)

    @classmethod
    def for_title(cls, title: str, quality: QualityProfile | None = None) -> "IngestSpec":
        return cls(description=f"Stream for {title}", quality=quality or QualityProfile())


class CreatedIngest(BaseModel):
    id: str
    ingest_url: str


class ChannelProfile(BaseModel):
    id: str | None = None
    title: str
    thumbnail: str | None = None


__all__ = [
    "BroadcastSpec",
    "ChannelProfile",
    "CreatedIngest",
    "IngestSpec",
    "QualityProfile",
]
