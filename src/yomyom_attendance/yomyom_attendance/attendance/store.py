"""Owner of the canonical attendance snapshot for one session.

The store holds at most one :class:`GroupAttendanceSnapshot` (the "current"
key) and is the only writer of it. Reads go through :meth:`fetch`, which skips
cache hits and refuses to start while another fetch is in flight; writes go
through :meth:`update`, which waits for the backend before touching local
state. Consumers that want optimism layer an overlay on top.

Every operation captures the store generation when it starts. :meth:`clear`
bumps the generation, so completions that land after a session boundary are
dropped instead of repopulating a fresh session.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional

from ..common.datetime_utils import today_iso
from ..core.constants import FETCH_ERROR_MESSAGE, UPDATE_ERROR_MESSAGE
from ..core.exceptions import NotFoundError, TransportError
from .closure import ClosureGate
from .model import FetchKey, GroupAttendanceSnapshot
from .repository import AttendanceTransport

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[Optional[GroupAttendanceSnapshot]], None]


class AttendanceStore:
    def __init__(self, transport: AttendanceTransport, *, gate: ClosureGate | None = None):
        self._transport = transport
        self._gate = gate
        self._snapshot: Optional[GroupAttendanceSnapshot] = None
        self._key: Optional[FetchKey] = None
        self._error: Optional[str] = None
        self._loading = False
        self._initialized = False
        self._generation = 0
        self._listeners: List[SnapshotListener] = []

    # ------------------------------------------------------------------
    @property
    def snapshot(self) -> Optional[GroupAttendanceSnapshot]:
        return self._snapshot

    @property
    def key(self) -> Optional[FetchKey]:
        return self._key

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def is_loading(self) -> bool:
        return self._loading

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Call ``listener`` with the new snapshot whenever the canonical one changes."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ------------------------------------------------------------------
    async def init(self, group_id: Optional[str]) -> None:
        """Load today's attendance for the user's group, once per session."""
        if not group_id or self._initialized:
            return
        self._initialized = True
        await self.fetch(group_id, today_iso())

    async def fetch(self, group_id: str, date, *, force: bool = False) -> bool:
        """Fetch the snapshot for ``(group_id, date)``.

        Returns True when a backend read was issued, False when the call was
        skipped (cache hit or another fetch already in flight).
        """

        key = FetchKey.of(group_id, date)

        if not force and self._snapshot is not None and self._key == key:
            logger.debug("fetch skipped, cache hit for %s/%s", key.group_id, key.date)
            return False

        # Single pending fetch per store, whatever its key.
        if self._loading:
            logger.debug("fetch skipped for %s/%s, another fetch is in flight", key.group_id, key.date)
            return False

        generation = self._generation
        self._loading = True
        self._error = None
        try:
            snapshot = await self._transport.get_group_attendance(key.group_id, key.date)
        except NotFoundError:
            if self._is_stale(generation, "fetch", key):
                return True
            logger.info("no attendance recorded yet for %s/%s", key.group_id, key.date)
            self._replace(None, key)
        except TransportError as exc:
            if self._is_stale(generation, "fetch", key):
                return True
            logger.error("Failed to fetch attendance for %s/%s: %s", key.group_id, key.date, exc)
            self._error = str(exc) or FETCH_ERROR_MESSAGE
        else:
            if self._is_stale(generation, "fetch", key):
                return True
            self._replace(snapshot, key)
        finally:
            if generation == self._generation:
                self._loading = False
        return True

    async def update(self, group_id: str, date, new_snapshot: GroupAttendanceSnapshot) -> None:
        """Send a full replacement snapshot; local state changes only after the backend confirms."""

        key = FetchKey.of(group_id, date)
        generation = self._generation
        try:
            await self._transport.put_group_attendance(key.group_id, key.date, new_snapshot)
        except TransportError as exc:
            logger.error("Failed to update attendance for %s/%s: %s", key.group_id, key.date, exc)
            if generation == self._generation:
                self._error = str(exc) or UPDATE_ERROR_MESSAGE
            raise
        if self._is_stale(generation, "update", key):
            return
        self._replace(new_snapshot, key)

    async def refresh(self) -> bool:
        if self._key is None:
            return False
        return await self.fetch(self._key.group_id, self._key.date, force=True)

    def clear(self) -> None:
        self._generation += 1
        self._snapshot = None
        self._key = None
        self._error = None
        self._loading = False
        self._initialized = False
        self._notify(None)

    # ------------------------------------------------------------------
    def _is_stale(self, generation: int, operation: str, key: FetchKey) -> bool:
        if generation == self._generation:
            return False
        logger.debug("dropping %s result for %s/%s from a cleared session", operation, key.group_id, key.date)
        return True

    def _replace(self, snapshot: Optional[GroupAttendanceSnapshot], key: FetchKey) -> None:
        self._snapshot = snapshot
        self._key = key
        self._error = None
        if self._gate is not None:
            self._gate.observe(snapshot)
        self._notify(snapshot)

    def _notify(self, snapshot: Optional[GroupAttendanceSnapshot]) -> None:
        for listener in list(self._listeners):
            listener(snapshot)
