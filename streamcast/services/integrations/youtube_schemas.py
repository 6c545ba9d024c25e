"""Response models for the subset of the YouTube Data API v3 used by streamcast.

Only the fields we read are modelled; everything else in the payload is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class _YouTubeModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class LiveBroadcastResource(_YouTubeModel):
    id: str


class IngestionInfo(_YouTubeModel):
    ingestion_address: str = Field(..., alias="ingestionAddress", description="RTMP base address")
    stream_name: str = Field(..., alias="streamName", description="Stream key appended to the address")
    backup_ingestion_address: str | None = Field(default=None, alias="backupIngestionAddress")


class LiveStreamCdn(_YouTubeModel):
    ingestion_type: str | None = Field(default=None, alias="ingestionType")
    ingestion_info: IngestionInfo = Field(..., alias="ingestionInfo")
    resolution: str | None = None
    frame_rate: str | None = Field(default=None, alias="frameRate")


class LiveStreamStatus(_YouTubeModel):
    stream_status: str | None = Field(default=None, alias="streamStatus")


class LiveStreamResource(_YouTubeModel):
    id: str
    cdn: LiveStreamCdn
    status: LiveStreamStatus | None = None

    @property
    def ingest_url(self) -> str:
        info = self.cdn.ingestion_info
        return f"{info.ingestion_address}/{info.stream_name}"


class LiveStreamStatusResource(_YouTubeModel):
    id: str
    status: LiveStreamStatus | None = None


class LiveStreamListResponse(_YouTubeModel):
    items: list[LiveStreamStatusResource] = Field(default_factory=list)


class Thumbnail(_YouTubeModel):
    url: str


class ChannelThumbnails(_YouTubeModel):
    default: Thumbnail | None = None


class ChannelSnippet(_YouTubeModel):
    title: str
    thumbnails: ChannelThumbnails | None = None


class ChannelResource(_YouTubeModel):
    id: str | None = None
    snippet: ChannelSnippet


class ChannelListResponse(_YouTubeModel):
    items: list[ChannelResource] = Field(default_factory=list)


class GoogleErrorDetail(_YouTubeModel):
    reason: str | None = None
    message: str | None = None


class GoogleErrorBody(_YouTubeModel):
    code: int | None = None
    message: str | None = None
    errors: list[GoogleErrorDetail] = Field(default_factory=list)


class GoogleErrorEnvelope(_YouTubeModel):
    error: GoogleErrorBody
