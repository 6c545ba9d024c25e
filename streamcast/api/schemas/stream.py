from pydantic import BaseModel, Field


class StartStreamOut(BaseModel):
    broadcast_url: str = Field(..., description="Public watch URL of the live broadcast")
    stream_id: str = Field(..., description="Id to use with stop/status endpoints")


class StopStreamOut(BaseModel):
    stopped: bool
    message: str


class StreamStatusOut(BaseModel):
    is_streaming: bool


class CleanupOut(BaseModel):
    removed: int = Field(..., description="Number of uploaded files deleted")
