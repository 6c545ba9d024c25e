from pydantic import BaseModel, Field


class StartStreamResult(BaseModel):
    """Outcome of a successful start: the stream is live on the platform."""

    broadcast_url: str = Field(description="Public watch URL of the broadcast")
    stream_id: str = Field(description="Handle for stop/status calls")


__all__ = ["StartStreamResult"]
