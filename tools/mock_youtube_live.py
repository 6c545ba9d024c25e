"""
Mock implementation of the YouTube Data API v3 live endpoints.

This FastAPI app keeps broadcasts and streams in memory so the backend can run
locally without a Google account:

* POST   /youtube/v3/liveBroadcasts
* POST   /youtube/v3/liveStreams
* POST   /youtube/v3/liveBroadcasts/bind
* POST   /youtube/v3/liveBroadcasts/transition
* DELETE /youtube/v3/liveBroadcasts
* DELETE /youtube/v3/liveStreams
* GET    /youtube/v3/liveStreams
* GET    /youtube/v3/channels

Run with granian:
    granian --interface ASGI --host 127.0.0.1 --port 18082 tools.mock_youtube_live:app

Then point YOUTUBE_API_BASE_URL to http://127.0.0.1:18082/youtube/v3 (e.g. in env.local).
Set MOCK_INGEST_ADDRESS to an RTMP server you run locally if ffmpeg should
actually connect somewhere.
"""

from __future__ import annotations

import os
import uuid

from fastapi import FastAPI, Header, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

app = FastAPI(title="youtube-live mock", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

INGEST_ADDRESS = os.environ.get("MOCK_INGEST_ADDRESS", "rtmp://127.0.0.1:1935/live2")

# Broadcast lifecycle order accepted by the transition endpoint
_NEXT_STATUS = {"created": {"ready"}, "ready": {"testing"}, "testing": {"live"}, "live": {"complete"}}

_broadcasts: dict[str, dict] = {}
_streams: dict[str, dict] = {}


def _error(status: int, reason: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"error": {"code": status, "message": message, "errors": [{"reason": reason, "message": message}]}},
    )


def _check_auth(authorization: str | None) -> JSONResponse | None:
    if not authorization or not authorization.startswith("Bearer "):
        return _error(401, "authError", "Invalid Credentials")
    return None


@app.get("/health")
async def health():
    """Health check endpoint for container orchestration."""
    return {"status": "ok", "service": "mock-youtube-live"}


@app.post("/youtube/v3/liveBroadcasts")
async def insert_broadcast(request: Request, authorization: str | None = Header(None)):
    """Mock liveBroadcasts.insert."""
    if denied := _check_auth(authorization):
        return denied

    body = await request.json()
    print("=== POST /liveBroadcasts ===")
    print(f"Request body: {body}")
    print("=" * 40)

    broadcast_id = f"mock_b_{uuid.uuid4().hex[:11]}"
    _broadcasts[broadcast_id] = {
        "id": broadcast_id,
        "snippet": body.get("snippet", {}),
        "status": {**body.get("status", {}), "lifeCycleStatus": "created"},
        "contentDetails": body.get("contentDetails", {}),
    }
    return _broadcasts[broadcast_id]


@app.post("/youtube/v3/liveStreams")
async def insert_stream(request: Request, authorization: str | None = Header(None)):
    """Mock liveStreams.insert."""
    if denied := _check_auth(authorization):
        return denied

    body = await request.json()
    print("=== POST /liveStreams ===")
    print(f"Request body: {body}")
    print("=" * 40)

    stream_id = f"mock_s_{uuid.uuid4().hex[:11]}"
    cdn = body.get("cdn", {})
    _streams[stream_id] = {
        "id": stream_id,
        "snippet": body.get("snippet", {}),
        "cdn": {
            **cdn,
            "ingestionInfo": {
                "ingestionAddress": INGEST_ADDRESS,
                "streamName": uuid.uuid4().hex[:16],
            },
        },
        "status": {"streamStatus": "ready"},
    }
    return _streams[stream_id]


@app.post("/youtube/v3/liveBroadcasts/bind")
async def bind_broadcast(
    id: str = Query(...),
    stream_id: str = Query(..., alias="streamId"),
    authorization: str | None = Header(None),
):
    """Mock liveBroadcasts.bind."""
    if denied := _check_auth(authorization):
        return denied
    if id not in _broadcasts:
        return _error(404, "liveBroadcastNotFound", f"Broadcast {id} not found")
    if stream_id not in _streams:
        return _error(404, "liveStreamNotFound", f"Stream {stream_id} not found")

    print(f"=== bind {id} -> {stream_id} ===")
    _broadcasts[id]["contentDetails"]["boundStreamId"] = stream_id
    # Pretend the ingest starts receiving data as soon as it is bound.
    _streams[stream_id]["status"]["streamStatus"] = "active"
    return _broadcasts[id]


@app.post("/youtube/v3/liveBroadcasts/transition")
async def transition_broadcast(
    id: str = Query(...),
    broadcast_status: str = Query(..., alias="broadcastStatus"),
    authorization: str | None = Header(None),
):
    """Mock liveBroadcasts.transition."""
    if denied := _check_auth(authorization):
        return denied
    broadcast = _broadcasts.get(id)
    if broadcast is None:
        return _error(404, "liveBroadcastNotFound", f"Broadcast {id} not found")

    current = broadcast["status"]["lifeCycleStatus"]
    if broadcast_status not in _NEXT_STATUS.get(current, set()):
        return _error(403, "invalidTransition", f"Cannot transition from {current} to {broadcast_status}")

    print(f"=== transition {id}: {current} -> {broadcast_status} ===")
    broadcast["status"]["lifeCycleStatus"] = broadcast_status
    return broadcast


@app.delete("/youtube/v3/liveBroadcasts")
async def delete_broadcast(id: str = Query(...), authorization: str | None = Header(None)):
    """Mock liveBroadcasts.delete."""
    if denied := _check_auth(authorization):
        return denied
    if _broadcasts.pop(id, None) is None:
        return _error(404, "liveBroadcastNotFound", f"Broadcast {id} not found")
    print(f"=== deleted broadcast {id} ===")
    return Response(status_code=204)


@app.delete("/youtube/v3/liveStreams")
async def delete_stream(id: str = Query(...), authorization: str | None = Header(None)):
    """Mock liveStreams.delete."""
    if denied := _check_auth(authorization):
        return denied
    if _streams.pop(id, None) is None:
        return _error(404, "liveStreamNotFound", f"Stream {id} not found")
    print(f"=== deleted stream {id} ===")
    return Response(status_code=204)


@app.get("/youtube/v3/liveStreams")
async def list_streams(id: str = Query(...), authorization: str | None = Header(None)):
    """Mock liveStreams.list (status part only)."""
    if denied := _check_auth(authorization):
        return denied
    stream = _streams.get(id)
    items = [{"id": stream["id"], "status": stream["status"]}] if stream else []
    return {"kind": "youtube#liveStreamListResponse", "items": items}


@app.get("/youtube/v3/channels")
async def list_channels(authorization: str | None = Header(None)):
    """Mock channels.list (mine=true)."""
    if denied := _check_auth(authorization):
        return denied
    return {
        "kind": "youtube#channelListResponse",
        "items": [
            {
                "id": "mock_channel",
                "snippet": {
                    "title": "Mock Channel",
                    "thumbnails": {"default": {"url": "https://example.com/thumb.jpg"}},
                },
            }
        ],
    }


__all__ = ["app"]
