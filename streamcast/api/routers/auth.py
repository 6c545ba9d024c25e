from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse
from loguru import logger

from streamcast.api.dependency import (
    AUTH_COOKIE_NAME,
    get_oauth_service,
    get_platform,
    read_auth_cookie,
)
from streamcast.api.schemas.auth import AuthStatusOut, AuthUrlOut, ChannelInfoOut
from streamcast.api.schemas.base import ApiOut
from streamcast.app_config import get_app_environ_config
from streamcast.services.integrations.broadcast_platform import BroadcastPlatform
from streamcast.services.integrations.google_oauth import GoogleOAuthService

router = APIRouter(prefix="/auth", tags=["auth"])

# Cookie lifetime in seconds (24h)
AUTH_COOKIE_MAX_AGE = 24 * 60 * 60


@router.get("/youtube")
async def youtube_auth_url(
    oauth: GoogleOAuthService = Depends(get_oauth_service),
) -> ApiOut[AuthUrlOut]:
    """Get the Google consent URL for the YouTube scope."""
    return ApiOut[AuthUrlOut](results=AuthUrlOut(auth_url=oauth.build_auth_url()))


@router.get("/callback")
async def oauth_callback(
    code: str | None = Query(None),
    oauth: GoogleOAuthService = Depends(get_oauth_service),
    platform: BroadcastPlatform = Depends(get_platform),
) -> RedirectResponse:
    """OAuth redirect target: store the tokens in a cookie and bounce to the frontend."""
    cfg = get_app_environ_config()
    if not code:
        logger.warning("OAuth callback without code")
        return RedirectResponse(f"{cfg.FRONTEND_URL}?error=auth_failed", status_code=302)

    try:
        auth = await oauth.exchange_code(code)
        channel = await platform.query_channel(auth)
    except Exception:
        logger.exception("OAuth callback failed")
        return RedirectResponse(f"{cfg.FRONTEND_URL}?error=auth_failed", status_code=302)

    logger.info(f"Authenticated YouTube channel {channel.title!r}")
    response = RedirectResponse(f"{cfg.FRONTEND_URL}?auth=success", status_code=302)
    response.set_cookie(
        AUTH_COOKIE_NAME,
        auth.model_dump_json(exclude_none=True),
        max_age=AUTH_COOKIE_MAX_AGE,
        path="/",
        domain=cfg.COOKIE_DOMAIN,
        secure=cfg.COOKIE_SECURE,
        httponly=True,
        samesite="none" if cfg.COOKIE_SECURE else "lax",
    )
    return response


@router.get("/status")
async def auth_status(
    request: Request,
    platform: BroadcastPlatform = Depends(get_platform),
) -> ApiOut[AuthStatusOut]:
    """Whether the caller holds usable credentials. Never fails."""
    auth = read_auth_cookie(request)
    if auth is None:
        return ApiOut[AuthStatusOut](results=AuthStatusOut(authenticated=False))

    try:
        channel = await platform.query_channel(auth)
    except Exception as e:
        logger.warning(f"Auth status check failed: {e}")
        return ApiOut[AuthStatusOut](results=AuthStatusOut(authenticated=False))

    return ApiOut[AuthStatusOut](
        results=AuthStatusOut(
            authenticated=True,
            channel_info=ChannelInfoOut(title=channel.title, thumbnail=channel.thumbnail),
        )
    )
