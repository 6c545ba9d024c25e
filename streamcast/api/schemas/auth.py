from pydantic import BaseModel


class AuthUrlOut(BaseModel):
    auth_url: str


class ChannelInfoOut(BaseModel):
    title: str
    thumbnail: str | None = None


class AuthStatusOut(BaseModel):
    authenticated: bool
    channel_info: ChannelInfoOut | None = None
