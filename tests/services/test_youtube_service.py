"""Tests for the YouTube Live API client and the Google OAuth helper.

HTTP is served by `httpx.MockTransport`, so request shapes are asserted
without any network access.
"""

import json

import httpx
import pytest

from streamcast.schemas import AuthContext, BroadcastSpec, BroadcastStatus, IngestSpec, PrivacyStatus
from streamcast.services.integrations.google_oauth import GoogleOAuthService
from streamcast.services.integrations.youtube_service import YouTubeApiError, YouTubeLiveService
from streamcast.utils.app_errors import AppError

BASE_URL = "https://yt.test/youtube/v3"


class Recorder:
    """MockTransport handler returning queued responses and keeping requests."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0)

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


def make_service(recorder: Recorder) -> YouTubeLiveService:
    return YouTubeLiveService(base_url=BASE_URL, timeout=5, transport=httpx.MockTransport(recorder))


@pytest.fixture
def auth() -> AuthContext:
    return AuthContext(access_token="ya29.token")


def google_error(status: int, reason: str, message: str) -> httpx.Response:
    return httpx.Response(
        status,
        json={"error": {"code": status, "message": message, "errors": [{"reason": reason, "message": message}]}},
    )


class TestCreateBroadcast:
    async def test_request_shape(self, auth):
        recorder = Recorder(httpx.Response(200, json={"id": "B1", "kind": "youtube#liveBroadcast"}))
        service = make_service(recorder)

        broadcast_id = await service.create_broadcast(
            auth, BroadcastSpec.for_title("Demo", PrivacyStatus.UNLISTED)
        )

        assert broadcast_id == "B1"
        request = recorder.last
        assert request.method == "POST"
        assert request.url.path == "/youtube/v3/liveBroadcasts"
        assert request.url.params["part"] == "snippet,status,contentDetails"
        assert request.headers["Authorization"] == "Bearer ya29.token"

        body = json.loads(request.content)
        assert body["snippet"]["title"] == "Demo"
        assert body["snippet"]["description"] == "Stream of Demo"
        assert body["status"] == {"privacyStatus": "unlisted", "selfDeclaredMadeForKids": False}
        details = body["contentDetails"]
        assert details["enableAutoStart"] is True
        assert details["enableAutoStop"] is True
        assert details["enableDvr"] is True
        assert details["recordFromStart"] is True
        assert details["monitorStream"] == {"enableMonitorStream": True, "broadcastStreamDelayMs": 0}

    async def test_error_envelope_parsed(self, auth):
        recorder = Recorder(google_error(403, "liveStreamingNotEnabled", "Live streaming is not enabled"))
        service = make_service(recorder)

        with pytest.raises(YouTubeApiError) as exc_info:
            await service.create_broadcast(auth, BroadcastSpec.for_title("Demo"))

        error = exc_info.value
        assert error.http_status == 403
        assert error.reason == "liveStreamingNotEnabled"
        assert "Live streaming is not enabled" in error.errmesg
        assert error.errcode == "E_YOUTUBE_API_ERROR"
        assert error.status_code == 502

    async def test_non_json_error_body(self, auth):
        recorder = Recorder(httpx.Response(500, text="upstream exploded"))
        service = make_service(recorder)

        with pytest.raises(YouTubeApiError) as exc_info:
            await service.create_broadcast(auth, BroadcastSpec.for_title("Demo"))

        assert exc_info.value.http_status == 500
        assert exc_info.value.reason is None
        assert "upstream exploded" in exc_info.value.errmesg

    async def test_transport_error_wrapped(self, auth):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = YouTubeLiveService(base_url=BASE_URL, transport=httpx.MockTransport(handler))

        with pytest.raises(YouTubeApiError, match="transport error") as exc_info:
            await service.create_broadcast(auth, BroadcastSpec.for_title("Demo"))

        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    async def test_unexpected_payload(self, auth):
        recorder = Recorder(httpx.Response(200, json={"kind": "youtube#liveBroadcast"}))

        with pytest.raises(YouTubeApiError, match="Unexpected YouTube"):
            await make_service(recorder).create_broadcast(auth, BroadcastSpec.for_title("Demo"))


class TestCreateIngestResource:
    async def test_ingest_url_joins_address_and_stream_name(self, auth):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "id": "S1",
                    "cdn": {
                        "ingestionType": "rtmp",
                        "ingestionInfo": {
                            "ingestionAddress": "rtmp://a.rtmp.youtube.com/live2",
                            "streamName": "abcd-efgh-ijkl",
                        },
                    },
                    "status": {"streamStatus": "ready"},
                },
            )
        )
        service = make_service(recorder)

        ingest = await service.create_ingest_resource(auth, IngestSpec.for_title("Demo"))

        assert ingest.id == "S1"
        assert ingest.ingest_url == "rtmp://a.rtmp.youtube.com/live2/abcd-efgh-ijkl"
        body = json.loads(recorder.last.content)
        assert body["snippet"] == {"title": "Stream", "description": "Stream for Demo"}
        assert body["cdn"] == {
            "format": "1080p",
            "ingestionType": "rtmp",
            "resolution": "variable",
            "frameRate": "variable",
        }


class TestBindTransitionDelete:
    async def test_bind_params(self, auth):
        recorder = Recorder(httpx.Response(200, json={"id": "B1"}))

        await make_service(recorder).bind(auth, "B1", "S1")

        params = recorder.last.url.params
        assert recorder.last.url.path.endswith("/liveBroadcasts/bind")
        assert params["id"] == "B1"
        assert params["streamId"] == "S1"

    async def test_transition_params(self, auth):
        recorder = Recorder(httpx.Response(200, json={"id": "B1"}))

        await make_service(recorder).transition(auth, "B1", BroadcastStatus.TESTING)

        params = recorder.last.url.params
        assert recorder.last.url.path.endswith("/liveBroadcasts/transition")
        assert params["broadcastStatus"] == "testing"
        assert params["id"] == "B1"

    async def test_transition_rejected(self, auth):
        recorder = Recorder(google_error(403, "invalidTransition", "Invalid transition"))

        with pytest.raises(YouTubeApiError) as exc_info:
            await make_service(recorder).transition(auth, "B1", BroadcastStatus.LIVE)

        assert exc_info.value.reason == "invalidTransition"

    async def test_delete_broadcast_no_content(self, auth):
        recorder = Recorder(httpx.Response(204))

        await make_service(recorder).delete_broadcast(auth, "B1")

        assert recorder.last.method == "DELETE"
        assert recorder.last.url.path.endswith("/liveBroadcasts")
        assert recorder.last.url.params["id"] == "B1"

    async def test_delete_ingest_not_found(self, auth):
        recorder = Recorder(google_error(404, "liveStreamNotFound", "Stream not found"))

        with pytest.raises(YouTubeApiError) as exc_info:
            await make_service(recorder).delete_ingest_resource(auth, "S1")

        assert exc_info.value.http_status == 404


class TestQueries:
    async def test_get_ingest_status(self, auth):
        recorder = Recorder(
            httpx.Response(200, json={"items": [{"id": "S1", "status": {"streamStatus": "active"}}]})
        )

        assert await make_service(recorder).get_ingest_status(auth, "S1") == "active"
        assert recorder.last.url.params["part"] == "status"

    async def test_get_ingest_status_unknown_stream(self, auth):
        recorder = Recorder(httpx.Response(200, json={"items": []}))

        assert await make_service(recorder).get_ingest_status(auth, "S404") is None

    async def test_query_channel(self, auth):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "items": [
                        {
                            "id": "UC1",
                            "snippet": {
                                "title": "My Channel",
                                "thumbnails": {"default": {"url": "https://yt3.test/t.jpg"}},
                            },
                        }
                    ]
                },
            )
        )

        channel = await make_service(recorder).query_channel(auth)

        assert channel.title == "My Channel"
        assert channel.thumbnail == "https://yt3.test/t.jpg"
        assert recorder.last.url.params["mine"] == "true"

    async def test_query_channel_without_channel(self, auth):
        recorder = Recorder(httpx.Response(200, json={"items": []}))

        with pytest.raises(YouTubeApiError, match="No YouTube channel"):
            await make_service(recorder).query_channel(auth)

    def test_broadcast_url(self):
        service = YouTubeLiveService(base_url=BASE_URL)

        assert service.broadcast_url("abc123").endswith("abc123")


class TestGoogleOAuthService:
    def configured(self, transport=None) -> GoogleOAuthService:
        service = GoogleOAuthService(transport=transport)
        service._cfg = service._cfg.model_copy(
            update={"YOUTUBE_CLIENT_ID": "client-id", "YOUTUBE_CLIENT_SECRET": "client-secret"}
        )
        return service

    def test_build_auth_url(self):
        url = httpx.URL(self.configured().build_auth_url())

        assert url.params["client_id"] == "client-id"
        assert url.params["access_type"] == "offline"
        assert url.params["response_type"] == "code"
        assert url.params["scope"] == "https://www.googleapis.com/auth/youtube.force-ssl"

    def test_not_configured(self):
        service = GoogleOAuthService()
        service._cfg = service._cfg.model_copy(update={"YOUTUBE_CLIENT_ID": None})

        with pytest.raises(AppError) as exc_info:
            service.build_auth_url()

        assert exc_info.value.errcode == "E_OAUTH_NOT_CONFIGURED"

    async def test_exchange_code(self):
        recorder = Recorder(
            httpx.Response(
                200,
                json={
                    "access_token": "ya29.new",
                    "refresh_token": "1//refresh",
                    "expires_in": 3599,
                    "scope": "https://www.googleapis.com/auth/youtube.force-ssl",
                    "token_type": "Bearer",
                },
            )
        )
        service = self.configured(httpx.MockTransport(recorder))

        auth = await service.exchange_code("4/code")

        assert auth.access_token == "ya29.new"
        assert auth.refresh_token == "1//refresh"
        assert auth.expiry_date is not None
        form = dict(httpx.QueryParams(recorder.last.content.decode()))
        assert form["code"] == "4/code"
        assert form["grant_type"] == "authorization_code"

    async def test_exchange_code_rejected(self):
        recorder = Recorder(httpx.Response(400, json={"error": "invalid_grant"}))
        service = self.configured(httpx.MockTransport(recorder))

        with pytest.raises(AppError) as exc_info:
            await service.exchange_code("bad")

        assert exc_info.value.errcode == "E_OAUTH_EXCHANGE_FAILED"
