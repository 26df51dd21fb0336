from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Mapping, Optional

from ..common.datetime_utils import to_iso_date, utc_now_iso
from ..core.enums import InternalStatus, WireStatus
from ..core.exceptions import AttendanceLoadingError, NotFoundError, TransportError, ValidationError
from .closure import ClosureGate
from .model import AttendanceChildRecord, FetchKey, GroupAttendanceSnapshot
from .overlay import OptimisticOverlay, merge
from .repository import AttendanceTransport
from .store import AttendanceStore
from .vocabulary import AttendanceSummary, summarize, to_internal, to_wire

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupDayView:
    """Read-model for one group day: canonical data with pending statuses merged in."""

    key: FetchKey
    snapshot: Optional[GroupAttendanceSnapshot]
    statuses: Mapping[str, WireStatus]
    pending: frozenset
    summary: AttendanceSummary
    is_closed: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        snapshot = self.snapshot
        children = []
        for record in snapshot.children if snapshot else ():
            status = self.statuses.get(record.child_id, record.status)
            children.append(
                {
                    "childId": record.child_id,
                    "firstName": record.first_name,
                    "lastName": record.last_name,
                    "dateOfBirth": record.date_of_birth,
                    "status": status.value,
                    "internalStatus": to_internal(status).value,
                    "pending": record.child_id in self.pending,
                    "timestamp": record.timestamp,
                }
            )
        return {
            "groupId": self.key.group_id,
            "date": self.key.date,
            "groupName": snapshot.group_name if snapshot else None,
            "accountName": snapshot.account_name if snapshot else None,
            "loaded": snapshot is not None,
            "isClosed": self.is_closed,
            "children": children,
            "summary": self.summary.to_dict(),
            "error": self.error,
        }


@dataclass(frozen=True)
class ParentChildDay:
    child: AttendanceChildRecord
    group_id: str
    group_name: str
    date: str
    status: WireStatus
    is_closed: bool

    def to_dict(self) -> dict:
        return {
            "childId": self.child.child_id,
            "firstName": self.child.first_name,
            "lastName": self.child.last_name,
            "groupId": self.group_id,
            "groupName": self.group_name,
            "date": self.date,
            "status": self.status.value,
            "internalStatus": to_internal(self.status).value,
            "isClosed": self.is_closed,
        }


def build_day_view(
    store: AttendanceStore,
    gate: ClosureGate,
    key: FetchKey,
    overlay: OptimisticOverlay | None = None,
) -> GroupDayView:
    snapshot = store.snapshot if store.key == key else None
    pending = overlay.entries() if overlay is not None else {}
    statuses = merge(snapshot, pending)
    closed = gate.is_closed(snapshot) if snapshot is not None else gate.is_closed(key)
    overlay_error = overlay.error if overlay is not None else None
    return GroupDayView(
        key=key,
        snapshot=snapshot,
        statuses=statuses,
        pending=frozenset(k for k in pending if k in statuses),
        summary=summarize(statuses.values()),
        is_closed=closed,
        error=overlay_error or store.error,
    )


class _SnapshotAccess:
    def __init__(self, store: AttendanceStore, gate: ClosureGate, clock: Callable[[], str]):
        self._store = store
        self._gate = gate
        self._clock = clock

    async def _open_snapshot(self, key: FetchKey) -> GroupAttendanceSnapshot:
        """Canonical snapshot for ``key``, loaded if needed, after the closure check."""
        self._gate.ensure_open(key)
        if self._store.key != key or self._store.snapshot is None:
            issued = await self._store.fetch(key.group_id, key.date)
            if not issued and self._store.is_loading:
                raise AttendanceLoadingError(key.group_id, key.date)
            if self._store.key != key and self._store.error:
                raise TransportError(self._store.error)
        snapshot = self._store.snapshot if self._store.key == key else None
        if snapshot is None:
            raise ValidationError(f"No attendance recorded for group {key.group_id} on {key.date}")
        self._gate.ensure_open(snapshot)
        return snapshot


class AttendanceService(_SnapshotAccess):
    """Staff operations: load a group day and record statuses in bulk."""

    def __init__(
        self,
        store: AttendanceStore,
        gate: ClosureGate,
        *,
        clock: Callable[[], str] = utc_now_iso,
    ):
        super().__init__(store, gate, clock)

    async def load_day(self, group_id: str, date) -> GroupDayView:
        key = FetchKey.of(group_id, date)
        await self._store.fetch(key.group_id, key.date)
        return build_day_view(self._store, self._gate, key)

    async def set_statuses(
        self,
        group_id: str,
        date,
        statuses: Mapping[str, InternalStatus | str],
        *,
        user_id: Optional[str] = None,
    ) -> GroupDayView:
        key = FetchKey.of(group_id, date)
        if not statuses:
            raise ValidationError("No attendance changes given")
        wire_statuses = {child_id: to_wire(s) for child_id, s in statuses.items()}

        snapshot = await self._open_snapshot(key)
        updated = snapshot.with_statuses(wire_statuses, timestamp=self._clock(), updated_by_user_id=user_id)
        await self._store.update(key.group_id, key.date, updated)
        logger.info("recorded %d status change(s) for %s/%s", len(wire_statuses), key.group_id, key.date)
        return build_day_view(self._store, self._gate, key)

    async def mark_all(
        self,
        group_id: str,
        date,
        status: InternalStatus | str,
        *,
        only_unreported: bool = True,
        user_id: Optional[str] = None,
    ) -> GroupDayView:
        key = FetchKey.of(group_id, date)
        snapshot = await self._open_snapshot(key)
        targets = [
            c.child_id
            for c in snapshot.children
            if not only_unreported or c.status == WireStatus.UNREPORTED
        ]
        if not targets:
            return build_day_view(self._store, self._gate, key)
        return await self.set_statuses(key.group_id, key.date, {cid: status for cid in targets}, user_id=user_id)


class ParentAttendanceService(_SnapshotAccess):
    """Parent operations: optimistic single-child marks and a cross-group day view."""

    def __init__(
        self,
        store: AttendanceStore,
        gate: ClosureGate,
        overlay: OptimisticOverlay,
        transport: AttendanceTransport,
        *,
        clock: Callable[[], str] = utc_now_iso,
    ):
        super().__init__(store, gate, clock)
        self._overlay = overlay
        self._transport = transport

    def view(self, group_id: str, date) -> GroupDayView:
        return build_day_view(self._store, self._gate, FetchKey.of(group_id, date), self._overlay)

    async def mark_child(
        self,
        group_id: str,
        date,
        child_id: str,
        status: InternalStatus | str,
        *,
        user_id: Optional[str] = None,
    ) -> GroupDayView:
        key = FetchKey.of(group_id, date)
        wire = to_wire(status)
        snapshot = await self._open_snapshot(key)
        if snapshot.child(child_id) is None:
            raise ValidationError(f"Child {child_id} is not in group {key.group_id}")

        async def mutation(cid: str, pending: WireStatus) -> None:
            # Build on the latest canonical snapshot so concurrent marks for siblings survive.
            base = self._store.snapshot if self._store.key == key and self._store.snapshot else snapshot
            updated = base.with_child_status(cid, pending, timestamp=self._clock(), updated_by_user_id=user_id)
            await self._store.update(key.group_id, key.date, updated)

        await self._overlay.apply(child_id, to_internal(wire), mutation)
        return self.view(key.group_id, key.date)

    async def children_for_day(self, date, child_ids: Iterable[str]) -> List[ParentChildDay]:
        iso = to_iso_date(date)
        wanted = list(dict.fromkeys(child_ids))
        try:
            snapshots = await self._transport.get_attendance_by_date(iso)
        except NotFoundError:
            return []

        found: Dict[str, ParentChildDay] = {}
        for snapshot in snapshots:
            closed = self._gate.is_closed(snapshot)
            for record in snapshot.children:
                if record.child_id not in wanted or record.child_id in found:
                    continue
                pending = self._overlay.pending_status(record.child_id) if self._store.key == snapshot.key else None
                found[record.child_id] = ParentChildDay(
                    child=record,
                    group_id=snapshot.group_id,
                    group_name=snapshot.group_name,
                    date=snapshot.date,
                    status=pending or record.status,
                    is_closed=closed,
                )
        return [found[cid] for cid in wanted if cid in found]
