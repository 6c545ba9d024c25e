"""Unit tests for the YouTube OAuth endpoints."""

from unittest.mock import AsyncMock
from urllib.parse import unquote

import orjson
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from streamcast.api.dependency import AUTH_COOKIE_NAME, get_oauth_service, get_platform
from streamcast.api.errors import app_error_handler
from streamcast.api.routers.auth import router
from streamcast.app_config import get_app_environ_config
from streamcast.schemas import AuthContext, ChannelProfile
from streamcast.services.integrations.google_oauth import GoogleOAuthService
from streamcast.services.integrations.youtube_service import YouTubeApiError, YouTubeLiveService
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode


@pytest.fixture
def mock_oauth() -> AsyncMock:
    return AsyncMock(spec=GoogleOAuthService)


@pytest.fixture
def mock_platform() -> AsyncMock:
    platform = AsyncMock(spec=YouTubeLiveService)
    platform.query_channel.return_value = ChannelProfile(
        id="UC1", title="My Channel", thumbnail="https://yt3.test/t.jpg"
    )
    return platform


@pytest.fixture
def client(mock_oauth: AsyncMock, mock_platform: AsyncMock) -> TestClient:
    app = FastAPI()
    app.dependency_overrides[get_oauth_service] = lambda: mock_oauth
    app.dependency_overrides[get_platform] = lambda: mock_platform
    app.add_exception_handler(AppError, app_error_handler)  # type: ignore[arg-type]
    app.include_router(router)
    return TestClient(app)


@pytest.fixture
def frontend_url() -> str:
    return get_app_environ_config().FRONTEND_URL


class TestAuthUrl:
    def test_returns_consent_url(self, client, mock_oauth):
        mock_oauth.build_auth_url.return_value = "https://accounts.google.com/o/oauth2/v2/auth?x=1"

        response = client.get("/auth/youtube")

        assert response.status_code == 200
        assert response.json()["results"] == {"auth_url": "https://accounts.google.com/o/oauth2/v2/auth?x=1"}

    def test_not_configured(self, client, mock_oauth):
        mock_oauth.build_auth_url.side_effect = AppError(
            errcode=AppErrorCode.E_OAUTH_NOT_CONFIGURED,
            errmesg="YouTube OAuth client is not configured",
            status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
        )

        response = client.get("/auth/youtube")

        assert response.status_code == 500
        assert response.json()["errcode"] == AppErrorCode.E_OAUTH_NOT_CONFIGURED.value


class TestCallback:
    def test_success_sets_cookie_and_redirects(self, client, mock_oauth, mock_platform, frontend_url):
        mock_oauth.exchange_code.return_value = AuthContext(access_token="ya29.new", refresh_token="1//r")

        response = client.get("/auth/callback", params={"code": "4/code"}, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == f"{frontend_url}?auth=success"
        mock_oauth.exchange_code.assert_awaited_once_with("4/code")
        mock_platform.query_channel.assert_awaited_once()

        set_cookie = response.headers["set-cookie"]
        assert set_cookie.startswith(f"{AUTH_COOKIE_NAME}=")
        assert "HttpOnly" in set_cookie
        assert "Max-Age=86400" in set_cookie
        assert "ya29.new" in unquote(set_cookie)

    def test_exchange_failure_redirects_with_error(self, client, mock_oauth, mock_platform, frontend_url):
        mock_oauth.exchange_code.side_effect = AppError(
            errcode=AppErrorCode.E_OAUTH_EXCHANGE_FAILED,
            errmesg="Failed to exchange authorization code",
            status_code=HttpStatusCode.BAD_GATEWAY,
        )

        response = client.get("/auth/callback", params={"code": "bad"}, follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == f"{frontend_url}?error=auth_failed"
        assert "set-cookie" not in response.headers
        mock_platform.query_channel.assert_not_called()

    def test_channel_lookup_failure_redirects_with_error(self, client, mock_oauth, mock_platform, frontend_url):
        mock_oauth.exchange_code.return_value = AuthContext(access_token="ya29.new")
        mock_platform.query_channel.side_effect = YouTubeApiError("No YouTube channel", http_status=404)

        response = client.get("/auth/callback", params={"code": "4/code"}, follow_redirects=False)

        assert response.headers["location"] == f"{frontend_url}?error=auth_failed"
        assert "set-cookie" not in response.headers

    def test_missing_code(self, client, mock_oauth, frontend_url):
        response = client.get("/auth/callback", follow_redirects=False)

        assert response.status_code == 302
        assert response.headers["location"] == f"{frontend_url}?error=auth_failed"
        mock_oauth.exchange_code.assert_not_called()


class TestAuthStatus:
    def test_without_cookie(self, client, mock_platform):
        response = client.get("/auth/status")

        assert response.status_code == 200
        assert response.json()["results"] == {"authenticated": False, "channel_info": None}
        mock_platform.query_channel.assert_not_called()

    def test_with_cookie(self, client, mock_platform):
        cookie = orjson.dumps({"access_token": "ya29.token"}).decode()

        response = client.get("/auth/status", headers={"Cookie": f"{AUTH_COOKIE_NAME}={cookie}"})

        assert response.status_code == 200
        assert response.json()["results"] == {
            "authenticated": True,
            "channel_info": {"title": "My Channel", "thumbnail": "https://yt3.test/t.jpg"},
        }
        auth = mock_platform.query_channel.call_args.args[0]
        assert auth.access_token == "ya29.token"

    def test_expired_credentials_report_unauthenticated(self, client, mock_platform):
        mock_platform.query_channel.side_effect = YouTubeApiError("Invalid Credentials", http_status=401)
        cookie = orjson.dumps({"access_token": "expired"}).decode()

        response = client.get("/auth/status", headers={"Cookie": f"{AUTH_COOKIE_NAME}={cookie}"})

        assert response.status_code == 200
        assert response.json()["results"]["authenticated"] is False
