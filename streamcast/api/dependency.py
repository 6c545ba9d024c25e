from typing import Annotated

import orjson
from fastapi import Depends, Request
from loguru import logger
from pydantic import ValidationError

from streamcast.api.uploads import UploadPolicy
from streamcast.domain.live.stream import StreamService
from streamcast.schemas import AuthContext
from streamcast.services.integrations.broadcast_platform import BroadcastPlatform
from streamcast.services.integrations.google_oauth import GoogleOAuthService
from streamcast.utils.app_errors import AppError, AppErrorCode, HttpStatusCode

# Cookie carrying the caller's token bundle as JSON
AUTH_COOKIE_NAME = "youtube_credentials"


def read_auth_cookie(request: Request) -> AuthContext | None:
    """Parse the credential cookie; None when missing or unparseable."""
    raw = request.cookies.get(AUTH_COOKIE_NAME)
    if not raw:
        return None
    try:
        return AuthContext.model_validate(orjson.loads(raw))
    except (orjson.JSONDecodeError, ValidationError) as e:
        # Do not log the cookie value itself (contains tokens).
        logger.warning(f"Unparseable {AUTH_COOKIE_NAME} cookie: {type(e).__name__}")
        return None


async def get_auth_context(request: Request) -> AuthContext:
    auth = read_auth_cookie(request)
    if auth is None:
        raise AppError(
            errcode=AppErrorCode.E_AUTH_REQUIRED,
            errmesg="Authentication required",
            status_code=HttpStatusCode.UNAUTHORIZED,
        )
    return auth


CurrentAuth = Annotated[AuthContext, Depends(get_auth_context)]


def get_stream_service(request: Request) -> StreamService:
    """Get the StreamService wired at startup."""
    return request.app.state.stream_service


def get_platform(request: Request) -> BroadcastPlatform:
    return request.app.state.platform


def get_oauth_service(request: Request) -> GoogleOAuthService:
    return request.app.state.oauth_service


def get_upload_policy() -> UploadPolicy:
    return UploadPolicy.from_config()
