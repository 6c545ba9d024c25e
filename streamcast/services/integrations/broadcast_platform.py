"""Interface of the remote broadcast platform consumed by the stream lifecycle."""

from __future__ import annotations

from typing import Protocol

from streamcast.schemas import (
    AuthContext,
    BroadcastSpec,
    BroadcastStatus,
    ChannelProfile,
    CreatedIngest,
    IngestSpec,
)


class BroadcastPlatform(Protocol):
    """Remote video platform operations.

    Every call receives the caller's credential bundle. Calls are assumed
    at-least-once safe: create/bind/transition/delete may be retried.
    """

    async def create_broadcast(self, auth: AuthContext, spec: BroadcastSpec) -> str: ...

    async def create_ingest_resource(self, auth: AuthContext, spec: IngestSpec) -> CreatedIngest: ...

    async def bind(self, auth: AuthContext, broadcast_id: str, ingest_resource_id: str) -> None: ...

    async def transition(self, auth: AuthContext, broadcast_id: str, status: BroadcastStatus) -> None: ...

    async def delete_broadcast(self, auth: AuthContext, broadcast_id: str) -> None: ...

    async def delete_ingest_resource(self, auth: AuthContext, ingest_resource_id: str) -> None: ...

    async def get_ingest_status(self, auth: AuthContext, ingest_resource_id: str) -> str | None: ...

    async def query_channel(self, auth: AuthContext) -> ChannelProfile: ...

    def broadcast_url(self, broadcast_id: str) -> str: ...
