from pydantic import BaseModel, ConfigDict


class AuthContext(BaseModel):
    """Credential bundle for the current caller.

    Opaque to the stream lifecycle: it is handed as-is to every platform call.
    Unknown token fields returned by the identity provider are preserved.
    """

    model_config = ConfigDict(extra="allow")

    access_token: str
    refresh_token: str | None = None
    scope: str | None = None
    token_type: str = "Bearer"
    expiry_date: int | None = None

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


__all__ = ["AuthContext"]
