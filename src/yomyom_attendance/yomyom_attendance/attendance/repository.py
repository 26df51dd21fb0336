from __future__ import annotations

from typing import Protocol, Sequence

from ..core.enums import WireStatus
from .model import GroupAttendanceSnapshot


class AttendanceTransport(Protocol):
    """Backend operations the synchronization core consumes.

    Implementations raise ``NotFoundError`` when no record exists yet for a
    (group, date) and ``TransportError`` for every other failure.
    """

    async def get_group_attendance(self, group_id: str, date: str) -> GroupAttendanceSnapshot:
        raise NotImplementedError

    async def put_group_attendance(self, group_id: str, date: str, snapshot: GroupAttendanceSnapshot) -> None:
        raise NotImplementedError

    async def get_attendance_by_date(self, date: str) -> Sequence[GroupAttendanceSnapshot]:
        """Every group snapshot visible to the caller for one day."""

        raise NotImplementedError

    async def update_child_attendance(self, group_id: str, date: str, child_id: str, status: WireStatus) -> None:
        raise NotImplementedError
