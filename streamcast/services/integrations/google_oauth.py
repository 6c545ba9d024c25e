"""Google OAuth helper for the YouTube consent flow.

Only the authorization-code leg is covered: build the consent URL and exchange
the returned code for tokens. Token refresh is left to the identity provider
session (the cookie expires after 24h and the user re-consents).
"""

from __future__ import annotations

import time
from urllib.parse import urlencode

import httpx
from loguru import logger

from streamcast.app_config import get_app_environ_config
from streamcast.schemas import AuthContext
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

YOUTUBE_SCOPES = ["https://www.googleapis.com/auth/youtube.force-ssl"]


class GoogleOAuthService:
    def __init__(self, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._cfg = get_app_environ_config()
        self._transport = transport

    def _require_client(self) -> tuple[str, str]:
        client_id = self._cfg.YOUTUBE_CLIENT_ID
        client_secret = self._cfg.YOUTUBE_CLIENT_SECRET
        if not client_id or not client_secret:
            logger.error("YOUTUBE_CLIENT_ID or YOUTUBE_CLIENT_SECRET not configured")
            raise AppError(
                errcode=AppErrorCode.E_OAUTH_NOT_CONFIGURED,
                errmesg="OAuth client credentials must be configured. Set them in env.local or environment variables.",
                status_code=HttpStatusCode.INTERNAL_SERVER_ERROR,
            )
        return client_id, client_secret

    def build_auth_url(self) -> str:
        """Consent URL requesting offline access to manage the user's YouTube account."""
        client_id, _ = self._require_client()
        params = {
            "client_id": client_id,
            "redirect_uri": self._cfg.CALLBACK_URL,
            "response_type": "code",
            "access_type": "offline",
            "scope": " ".join(YOUTUBE_SCOPES),
        }
        return f"{self._cfg.GOOGLE_OAUTH_AUTH_URL}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> AuthContext:
        """Exchange an authorization code for an access/refresh token bundle."""
        client_id, client_secret = self._require_client()
        data = {
            "code": code,
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uri": self._cfg.CALLBACK_URL,
            "grant_type": "authorization_code",
        }
        try:
            async with httpx.AsyncClient(transport=self._transport, timeout=30) as client:
                response = await client.post(self._cfg.GOOGLE_OAUTH_TOKEN_URL, data=data)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise AppError(
                errcode=AppErrorCode.E_OAUTH_EXCHANGE_FAILED,
                errmesg=f"Failed to exchange authorization code: {e}",
                status_code=HttpStatusCode.BAD_GATEWAY,
            ) from e

        tokens = response.json()
        expires_in = tokens.pop("expires_in", None)
        if expires_in is not None:
            tokens["expiry_date"] = int((time.time() + int(expires_in)) * 1000)

        logger.info("Exchanged OAuth authorization code for tokens")
        return AuthContext.model_validate(tokens)
