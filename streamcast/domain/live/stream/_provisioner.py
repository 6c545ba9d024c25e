"""Remote resource provisioning: broadcast + ingest stream, then bind."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from loguru import logger

from streamcast.schemas import (
    AuthContext,
    BroadcastSpec,
    IngestSpec,
    PrivacyStatus,
    QualityProfile,
)
from streamcast.services.integrations.broadcast_platform import BroadcastPlatform

from ._compensation import RollbackList
from .stream_errors import BindingError, ProvisioningError


@dataclass(frozen=True)
class ProvisionedPair:
    broadcast_id: str
    ingest_resource_id: str
    ingest_url: str


class ResourceProvisioner:
    def __init__(self, platform: BroadcastPlatform):
        self._platform = platform

    async def create_pair(
        self,
        auth: AuthContext,
        title: str,
        rollback: RollbackList,
        privacy: PrivacyStatus = PrivacyStatus.PUBLIC,
        quality: QualityProfile | None = None,
    ) -> ProvisionedPair:
        """Create the broadcast and the ingest stream concurrently.

        Both calls always run to completion. Whatever was created is pushed onto
        `rollback` right away, so a half-created pair is cleaned up by compensation.

        Raises:
            ProvisioningError: If either create failed (chained to the first failure)
        """
        broadcast_result, ingest_result = await asyncio.gather(
            self._platform.create_broadcast(auth, BroadcastSpec.for_title(title, privacy)),
            self._platform.create_ingest_resource(auth, IngestSpec.for_title(title, quality)),
            return_exceptions=True,
        )

        if not isinstance(broadcast_result, BaseException):
            broadcast_id = broadcast_result
            rollback.add(
                f"delete broadcast {broadcast_id}",
                lambda: self._platform.delete_broadcast(auth, broadcast_id),
            )
        if not isinstance(ingest_result, BaseException):
            ingest = ingest_result
            rollback.add(
                f"delete ingest stream {ingest.id}",
                lambda: self._platform.delete_ingest_resource(auth, ingest.id),
            )

        failures = [r for r in (broadcast_result, ingest_result) if isinstance(r, BaseException)]
        if failures:
            for failure in failures:
                logger.error(f"❌ Resource creation failed: {type(failure).__name__}: {failure}")
            # A cancelled create is a cancellation of the whole attempt.
            for failure in failures:
                if isinstance(failure, asyncio.CancelledError):
                    raise failure
            raise ProvisioningError(
                f"Failed to provision broadcast resources for {title!r}: {failures[0]}"
            ) from failures[0]

        logger.info(
            f"Provisioned broadcast id={broadcast_result} and ingest stream id={ingest_result.id}"
        )
        return ProvisionedPair(
            broadcast_id=broadcast_result,
            ingest_resource_id=ingest_result.id,
            ingest_url=ingest_result.ingest_url,
        )

    async def bind(self, auth: AuthContext, broadcast_id: str, ingest_resource_id: str) -> None:
        """Bind the broadcast to the ingest stream.

        Raises:
            BindingError: If the bind call failed
        """
        try:
            await self._platform.bind(auth, broadcast_id, ingest_resource_id)
        except Exception as e:
            raise BindingError(
                f"Failed to bind broadcast {broadcast_id} to stream {ingest_resource_id}: {e}",
                stream_id=ingest_resource_id,
            ) from e
        logger.info(f"🔗 Bound broadcast {broadcast_id} to stream {ingest_resource_id}")
