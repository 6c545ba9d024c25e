from pydantic import BaseModel

from streamcast.shared.config import config


def _flag(key: str, default: str) -> bool:
    return str(config.get(key, default)).strip().lower() == "true"


class AppEnvironConfig(BaseModel):
    DEBUG: bool = _flag("DEBUG", "false")

    API_HOST: str = config.get("API_HOST", "0.0.0.0").strip()  # type: ignore
    API_PORT: int = int((config.get("API_PORT") or "").strip() or 3000)
    API_WORKERS: int = int((config.get("API_WORKERS") or "").strip() or 1)

    # Frontend / cookies
    FRONTEND_URL: str = config.get("FRONTEND_URL", "http://localhost:3000").strip()  # type: ignore
    COOKIE_DOMAIN: str | None = (config.get("COOKIE_DOMAIN") or "").strip() or None
    COOKIE_SECURE: bool = _flag("COOKIE_SECURE", "true")

    # Google OAuth
    YOUTUBE_CLIENT_ID: str | None = (config.get("YOUTUBE_CLIENT_ID") or "").strip() or None
    YOUTUBE_CLIENT_SECRET: str | None = (config.get("YOUTUBE_CLIENT_SECRET") or "").strip() or None
    CALLBACK_URL: str = config.get("CALLBACK_URL", "http://localhost:5000/auth/callback").strip()  # type: ignore
    GOOGLE_OAUTH_AUTH_URL: str = config.get(
        "GOOGLE_OAUTH_AUTH_URL", "https://accounts.google.com/o/oauth2/v2/auth"
    ).strip()  # type: ignore
    GOOGLE_OAUTH_TOKEN_URL: str = config.get(
        "GOOGLE_OAUTH_TOKEN_URL", "https://oauth2.googleapis.com/token"
    ).strip()  # type: ignore

    # YouTube Live Data API
    YOUTUBE_API_BASE_URL: str = config.get(
        "YOUTUBE_API_BASE_URL", "https://www.googleapis.com/youtube/v3"
    ).strip()  # type: ignore
    YOUTUBE_API_TIMEOUT_SECONDS: float = float(
        (config.get("YOUTUBE_API_TIMEOUT_SECONDS") or "").strip() or 30
    )
    BROADCAST_WATCH_BASE_URL: str = config.get(
        "BROADCAST_WATCH_BASE_URL", "https://youtube.com/watch?v="
    ).strip()  # type: ignore

    # Uploads
    UPLOAD_DIR: str = config.get("UPLOAD_DIR", "temp_uploads").strip()  # type: ignore
    MAX_UPLOAD_BYTES: int = int((config.get("MAX_UPLOAD_BYTES") or "").strip() or 50 * 1024 * 1024)

    # Encoder
    FFMPEG_BINARY: str = config.get("FFMPEG_BINARY", "ffmpeg").strip()  # type: ignore
    ENCODER_STARTUP_TIMEOUT_SECONDS: float = float(
        (config.get("ENCODER_STARTUP_TIMEOUT_SECONDS") or "").strip() or 30
    )

    # Minimum delays between lifecycle steps. Empirical values, tune per platform.
    TRANSITION_BIND_DELAY_SECONDS: float = float(
        (config.get("TRANSITION_BIND_DELAY_SECONDS") or "").strip() or 2
    )
    TRANSITION_READY_DELAY_SECONDS: float = float(
        (config.get("TRANSITION_READY_DELAY_SECONDS") or "").strip() or 5
    )
    TRANSITION_TESTING_DELAY_SECONDS: float = float(
        (config.get("TRANSITION_TESTING_DELAY_SECONDS") or "").strip() or 3
    )
    TRANSITION_LIVE_DELAY_SECONDS: float = float(
        (config.get("TRANSITION_LIVE_DELAY_SECONDS") or "").strip() or 5
    )

    # Optional ingest readiness poll before the first transition
    INGEST_POLL_ENABLED: bool = _flag("INGEST_POLL_ENABLED", "false")
    INGEST_POLL_INTERVAL_SECONDS: float = float(
        (config.get("INGEST_POLL_INTERVAL_SECONDS") or "").strip() or 2
    )
    INGEST_POLL_TIMEOUT_SECONDS: float = float(
        (config.get("INGEST_POLL_TIMEOUT_SECONDS") or "").strip() or 60
    )

    # Observability
    LOGFIRE_ENABLE: bool = _flag("LOGFIRE_ENABLE", "false")
    LOGFIRE_TOKEN: str | None = (config.get("LOGFIRE_TOKEN") or "").strip() or None


_app_environ_config = AppEnvironConfig()


def get_app_environ_config() -> AppEnvironConfig:
    return _app_environ_config
