from __future__ import annotations

import asyncio
import threading
from typing import Optional

import pytest

from src.yomyom_attendance.yomyom_attendance.attendance.closure import ClosureGate
from src.yomyom_attendance.yomyom_attendance.attendance.model import (
    AttendanceChildRecord,
    GroupAttendanceSnapshot,
)
from src.yomyom_attendance.yomyom_attendance.attendance.overlay import OptimisticOverlay
from src.yomyom_attendance.yomyom_attendance.attendance.store import AttendanceStore
from src.yomyom_attendance.yomyom_attendance.core.enums import WireStatus
from src.yomyom_attendance.yomyom_attendance.core.exceptions import NotFoundError

GROUP = "group-1"
DAY = "2024-01-15"


class FakeTransport:
    """In-memory backend. Reads and writes can be held open with an asyncio.Event."""

    def __init__(self):
        self.snapshots: dict[tuple[str, str], GroupAttendanceSnapshot] = {}
        self.reads: list[tuple[str, str]] = []
        self.writes: list[tuple[str, str, GroupAttendanceSnapshot]] = []
        self.child_updates: list[tuple[str, str, str, WireStatus]] = []
        self.read_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None
        self.read_gate: Optional[asyncio.Event] = None
        self.write_gate: Optional[asyncio.Event] = None
        # Blocks the calling thread, for requests served on separate threads.
        self.read_block: Optional[threading.Event] = None
        self.read_started = threading.Event()

    @property
    def network_calls(self) -> int:
        return len(self.reads) + len(self.writes) + len(self.child_updates)

    async def get_group_attendance(self, group_id, date):
        self.reads.append((group_id, date))
        self.read_started.set()
        if self.read_block is not None:
            self.read_block.wait(timeout=5)
        if self.read_gate is not None:
            await self.read_gate.wait()
        if self.read_error is not None:
            raise self.read_error
        snapshot = self.snapshots.get((group_id, date))
        if snapshot is None:
            raise NotFoundError()
        return snapshot

    async def put_group_attendance(self, group_id, date, snapshot):
        self.writes.append((group_id, date, snapshot))
        if self.write_gate is not None:
            await self.write_gate.wait()
        if self.write_error is not None:
            raise self.write_error
        self.snapshots[(group_id, date)] = snapshot

    async def get_attendance_by_date(self, date):
        self.reads.append(("*", date))
        return [s for (_, d), s in self.snapshots.items() if d == date]

    async def update_child_attendance(self, group_id, date, child_id, status):
        self.child_updates.append((group_id, date, child_id, status))
        if self.write_error is not None:
            raise self.write_error


def make_snapshot(
    statuses: Optional[dict] = None,
    *,
    group_id: str = GROUP,
    date: str = DAY,
    is_closed: bool = False,
    group_name: str = "Sunflowers",
) -> GroupAttendanceSnapshot:
    statuses = statuses if statuses is not None else {"c1": WireStatus.MISSING, "c2": WireStatus.UNREPORTED}
    children = tuple(
        AttendanceChildRecord(
            child_id=child_id,
            first_name=f"Kid-{child_id}",
            last_name="Levi",
            status=WireStatus(status),
            timestamp="2024-01-15T06:00:00Z",
        )
        for child_id, status in statuses.items()
    )
    return GroupAttendanceSnapshot(
        group_id=group_id,
        date=date,
        account_id="acc-1",
        account_name="Yom-Yom Kindergarten",
        group_name=group_name,
        is_closed=is_closed,
        children=children,
    )


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def gate() -> ClosureGate:
    return ClosureGate()


@pytest.fixture
def store(transport, gate) -> AttendanceStore:
    return AttendanceStore(transport, gate=gate)


@pytest.fixture
def overlay(store) -> OptimisticOverlay:
    return OptimisticOverlay(store)


@pytest.fixture
def fixed_clock():
    return lambda: "2024-01-15T08:30:00Z"
