"""Optimistic per-child status layer shown ahead of backend confirmation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import count
from typing import Awaitable, Callable, Dict, Mapping, Optional

from ..core.constants import CHILD_UPDATE_ERROR_MESSAGE
from ..core.enums import InternalStatus, WireStatus
from .model import GroupAttendanceSnapshot
from .store import AttendanceStore
from .vocabulary import to_wire

logger = logging.getLogger(__name__)

Mutation = Callable[[str, WireStatus], Awaitable[None]]


@dataclass(frozen=True)
class OptimisticEntry:
    child_id: str
    status: WireStatus
    seq: int


def merge(
    canonical: Optional[GroupAttendanceSnapshot],
    overlay: Mapping[str, WireStatus],
) -> Dict[str, WireStatus]:
    """Displayed status per child: the overlay value when present, else canonical."""
    if canonical is None:
        return {}
    return {c.child_id: overlay.get(c.child_id, c.status) for c in canonical.children}


class OptimisticOverlay:
    """Pending statuses keyed by child id.

    An entry lives until the canonical snapshot shows the same status
    (reconciled) or its mutation fails (rolled back). When built with a store,
    reconciliation runs on every canonical change.
    """

    def __init__(self, store: AttendanceStore | None = None):
        self._store = store
        self._entries: Dict[str, OptimisticEntry] = {}
        self._seq = count(1)
        self._error: Optional[str] = None
        self._unsubscribe = store.subscribe(self.reconcile) if store is not None else None

    @property
    def error(self) -> Optional[str]:
        return self._error

    def entries(self) -> Dict[str, WireStatus]:
        return {child_id: e.status for child_id, e in self._entries.items()}

    def pending_status(self, child_id: str) -> Optional[WireStatus]:
        entry = self._entries.get(child_id)
        return entry.status if entry else None

    def is_empty(self) -> bool:
        return not self._entries

    async def apply(self, child_id: str, status: InternalStatus | str, mutation: Mutation) -> None:
        """Show ``status`` for ``child_id`` immediately, then run ``mutation``.

        On failure the entry is rolled back, an error is recorded, the store is
        refreshed and the exception propagates to the caller.
        """

        wire = to_wire(status)
        entry = OptimisticEntry(child_id=child_id, status=wire, seq=next(self._seq))
        self._entries[child_id] = entry
        self._error = None
        logger.debug("overlay set %s -> %s", child_id, wire.value)

        try:
            await mutation(child_id, wire)
        except Exception:
            self._drop(entry)
            self._error = CHILD_UPDATE_ERROR_MESSAGE
            logger.warning("optimistic update for %s rolled back", child_id)
            if self._store is not None:
                await self._store.refresh()
            raise
        except BaseException:
            # Cancelled: the outcome is unknown, so show canonical state again.
            self._drop(entry)
            logger.debug("optimistic update for %s cancelled", child_id)
            raise

    def _drop(self, entry: OptimisticEntry) -> None:
        # A newer action for the same child keeps its own entry.
        if self._entries.get(entry.child_id) == entry:
            del self._entries[entry.child_id]

    def reconcile(self, snapshot: Optional[GroupAttendanceSnapshot]) -> None:
        if not self._entries or snapshot is None:
            return
        for child_id, entry in list(self._entries.items()):
            record = snapshot.child(child_id)
            if record is not None and record.status == entry.status:
                del self._entries[child_id]
                logger.debug("overlay reconciled %s at %s", child_id, entry.status.value)

    def displayed(self, canonical: Optional[GroupAttendanceSnapshot] = None) -> Dict[str, WireStatus]:
        if canonical is None and self._store is not None:
            canonical = self._store.snapshot
        return merge(canonical, self.entries())

    def displayed_status(self, child_id: str, canonical: Optional[GroupAttendanceSnapshot] = None) -> Optional[WireStatus]:
        return self.displayed(canonical).get(child_id)

    def clear(self) -> None:
        self._entries.clear()
        self._error = None

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
