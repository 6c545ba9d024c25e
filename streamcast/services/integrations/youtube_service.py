"""YouTube Live helper service.

This module provides a thin async wrapper around the YouTube Data API v3
live endpoints (liveBroadcasts, liveStreams, channels) using `httpx`.

Reference:
https://developers.google.com/youtube/v3/live/docs

Usage:
    service = YouTubeLiveService()

    broadcast_id = await service.create_broadcast(auth, BroadcastSpec.for_title("Demo"))
    ingest = await service.create_ingest_resource(auth, IngestSpec.for_title("Demo"))
    await service.bind(auth, broadcast_id, ingest.id)
    await service.transition(auth, broadcast_id, BroadcastStatus.LIVE)
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from streamcast.app_config import get_app_environ_config
from streamcast.schemas import (
    AuthContext,
    BroadcastSpec,
    BroadcastStatus,
    ChannelProfile,
    CreatedIngest,
    IngestSpec,
)
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

from .youtube_schemas import (
    ChannelListResponse,
    GoogleErrorEnvelope,
    LiveBroadcastResource,
    LiveStreamListResponse,
    LiveStreamResource,
)


class YouTubeApiError(AppError):
    """Raised for any failed YouTube API call (HTTP error, transport error, bad payload)."""

    def __init__(self, errmesg: str, http_status: int | None = None, reason: str | None = None):
        super().__init__(
            errcode=AppErrorCode.E_YOUTUBE_API_ERROR,
            errmesg=errmesg,
            status_code=HttpStatusCode.BAD_GATEWAY,
        )
        self.http_status = http_status
        self.reason = reason

    @classmethod
    def from_response(cls, response: httpx.Response) -> "YouTubeApiError":
        reason = None
        message = response.text[:500] or response.reason_phrase
        try:
            envelope = GoogleErrorEnvelope.model_validate(response.json())
            message = envelope.error.message or message
            if envelope.error.errors:
                reason = envelope.error.errors[0].reason
        except (ValueError, ValidationError):
            pass
        return cls(
            errmesg=f"YouTube API {response.request.method} {response.request.url.path} "
            f"failed with {response.status_code}: {message}",
            http_status=response.status_code,
            reason=reason,
        )


class YouTubeLiveService:
    """Service wrapper for the YouTube Live streaming API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        cfg = get_app_environ_config()
        self.base_url = (base_url or cfg.YOUTUBE_API_BASE_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else cfg.YOUTUBE_API_TIMEOUT_SECONDS
        self.watch_base_url = cfg.BROADCAST_WATCH_BASE_URL
        self._transport = transport
        logger.info("YouTubeLiveService initialized")

    async def _request(
        self,
        method: str,
        path: str,
        auth: AuthContext,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=self.timeout) as client:
                response = await client.request(
                    method,
                    url,
                    params=params,
                    json=json,
                    headers=auth.authorization_header(),
                )
        except httpx.HTTPError as e:
            raise YouTubeApiError(errmesg=f"YouTube API {method} {path} transport error: {e}") from e

        if response.is_error:
            raise YouTubeApiError.from_response(response)

        if not response.content:
            return {}
        return response.json()

    def _parse(self, model, data: dict[str, Any], what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.exception(f"Failed to validate YouTube {what} response")
            raise YouTubeApiError(errmesg=f"Unexpected YouTube {what} payload: {e}") from e

    async def create_broadcast(self, auth: AuthContext, spec: BroadcastSpec) -> str:
        """Create a live broadcast.

        Args:
            auth: Caller credentials
            spec: Broadcast configuration

        Returns:
            The platform-assigned broadcast id
        """
        body = {
            "snippet": {
                "title": spec.title,
                "description": spec.description,
                "scheduledStartTime": spec.scheduled_start_time.isoformat(),
            },
            "status": {
                "privacyStatus": spec.privacy.value,
                "selfDeclaredMadeForKids": spec.made_for_kids,
            },
            "contentDetails": {
                "enableAutoStart": spec.enable_auto_start,
                "enableAutoStop": spec.enable_auto_stop,
                "enableDvr": spec.enable_dvr,
                "enableEmbed": spec.enable_embed,
                "recordFromStart": spec.record_from_start,
                "monitorStream": {
                    "enableMonitorStream": spec.enable_monitor_stream,
                    "broadcastStreamDelayMs": spec.broadcast_stream_delay_ms,
                },
            },
        }
        logger.info(f"Creating YouTube broadcast title={spec.title!r} privacy={spec.privacy}")
        data = await self._request(
            "POST",
            "/liveBroadcasts",
            auth,
            params={"part": "snippet,status,contentDetails"},
            json=body,
        )
        broadcast = self._parse(LiveBroadcastResource, data, "liveBroadcasts.insert")
        logger.info(f"Created YouTube broadcast id={broadcast.id}")
        return broadcast.id

    async def create_ingest_resource(self, auth: AuthContext, spec: IngestSpec) -> CreatedIngest:
        """Create a live stream (the ingest side of a broadcast).

        Returns:
            CreatedIngest with the stream id and the full RTMP push URL
            (ingestion address + stream name)
        """
        body = {
            "snippet": {"title": spec.title, "description": spec.description},
            "cdn": {
                "format": spec.quality.format,
                "ingestionType": spec.quality.ingestion_type,
                "resolution": spec.quality.resolution,
                "frameRate": spec.quality.frame_rate,
            },
        }
        logger.info(f"Creating YouTube live stream ingestion={spec.quality.ingestion_type}")
        data = await self._request(
            "POST",
            "/liveStreams",
            auth,
            params={"part": "snippet,cdn,status"},
            json=body,
        )
        stream = self._parse(LiveStreamResource, data, "liveStreams.insert")
        logger.info(
            f"Created YouTube live stream id={stream.id} "
            f"address={stream.cdn.ingestion_info.ingestion_address}"
        )
        return CreatedIngest(id=stream.id, ingest_url=stream.ingest_url)

    async def bind(self, auth: AuthContext, broadcast_id: str, ingest_resource_id: str) -> None:
        logger.info(f"Binding YouTube broadcast id={broadcast_id} to stream id={ingest_resource_id}")
        await self._request(
            "POST",
            "/liveBroadcasts/bind",
            auth,
            params={"id": broadcast_id, "streamId": ingest_resource_id, "part": "id,contentDetails"},
        )

    async def transition(self, auth: AuthContext, broadcast_id: str, status: BroadcastStatus) -> None:
        logger.info(f"Transitioning YouTube broadcast id={broadcast_id} to {status}")
        await self._request(
            "POST",
            "/liveBroadcasts/transition",
            auth,
            params={"broadcastStatus": status.value, "id": broadcast_id, "part": "status"},
        )

    async def delete_broadcast(self, auth: AuthContext, broadcast_id: str) -> None:
        logger.info(f"Deleting YouTube broadcast id={broadcast_id}")
        await self._request("DELETE", "/liveBroadcasts", auth, params={"id": broadcast_id})
        logger.info(f"Deleted YouTube broadcast id={broadcast_id}")

    async def delete_ingest_resource(self, auth: AuthContext, ingest_resource_id: str) -> None:
        logger.info(f"Deleting YouTube live stream id={ingest_resource_id}")
        await self._request("DELETE", "/liveStreams", auth, params={"id": ingest_resource_id})
        logger.info(f"Deleted YouTube live stream id={ingest_resource_id}")

    async def get_ingest_status(self, auth: AuthContext, ingest_resource_id: str) -> str | None:
        """Get the ingest stream status (e.g. "ready", "active", "inactive").

        Returns:
            The reported stream status, or None if the stream is unknown
        """
        data = await self._request(
            "GET",
            "/liveStreams",
            auth,
            params={"part": "status", "id": ingest_resource_id},
        )
        listing = self._parse(LiveStreamListResponse, data, "liveStreams.list")
        if not listing.items or listing.items[0].status is None:
            return None
        return listing.items[0].status.stream_status

    async def query_channel(self, auth: AuthContext) -> ChannelProfile:
        """Get the authenticated user's channel title and thumbnail."""
        data = await self._request(
            "GET",
            "/channels",
            auth,
            params={"part": "snippet", "mine": "true"},
        )
        listing = self._parse(ChannelListResponse, data, "channels.list")
        if not listing.items:
            raise YouTubeApiError(errmesg="No YouTube channel found for the authenticated user")

        channel = listing.items[0]
        thumbnails = channel.snippet.thumbnails
        return ChannelProfile(
            id=channel.id,
            title=channel.snippet.title,
            thumbnail=thumbnails.default.url if thumbnails and thumbnails.default else None,
        )

    def broadcast_url(self, broadcast_id: str) -> str:
        """Public watch URL for a broadcast.

        Example:
            >>> service.broadcast_url("abc123")
            'https://youtube.com/watch?v=abc123'
        """
        return f"{self.watch_base_url}{broadcast_id}"
