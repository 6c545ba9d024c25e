"""Session registry: stream id -> active encode handle."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from ._encoder import EncodeHandle


class SessionRegistry:
    """Thread-safe mapping of stream ids to their running encode process.

    An id is present only while its encode process is running, so lookups
    double as the "is streaming" check.
    """

    def __init__(self):
        self._handles: dict[str, EncodeHandle] = {}
        self._lock = threading.Lock()

    def register(self, stream_id: str, handle: EncodeHandle) -> None:
        """Add an entry.

        Raises:
            KeyError: If the id already holds an active handle
        """
        with self._lock:
            if stream_id in self._handles:
                raise KeyError(f"Stream {stream_id} already has an active encode process")
            self._handles[stream_id] = handle
        logger.debug(f"Registered encode process for stream {stream_id}")

    def unregister(self, stream_id: str, handle: EncodeHandle | None = None) -> EncodeHandle | None:
        """Remove an entry and return it.

        When `handle` is given, the entry is removed only if it is that exact handle.
        """
        with self._lock:
            current = self._handles.get(stream_id)
            if current is None or (handle is not None and current is not handle):
                return None
            del self._handles[stream_id]
        logger.debug(f"Unregistered encode process for stream {stream_id}")
        return current

    def lookup(self, stream_id: str) -> EncodeHandle | None:
        with self._lock:
            return self._handles.get(stream_id)

    def active_ids(self) -> list[str]:
        with self._lock:
            return list(self._handles)

    def __len__(self) -> int:
        with self._lock:
            return len(self._handles)

    def __contains__(self, stream_id: object) -> bool:
        with self._lock:
            return stream_id in self._handles
