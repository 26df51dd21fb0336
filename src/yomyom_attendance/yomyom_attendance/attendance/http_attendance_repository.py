from __future__ import annotations

from typing import Sequence

from ..api.connection import ApiConnection
from ..api.http_base import send_json_async
from ..core.constants import ATTENDANCE_API_PREFIX
from ..core.enums import WireStatus
from ..core.exceptions import TransportError, ValidationError
from .model import GroupAttendanceSnapshot
from .repository import AttendanceTransport


class HttpAttendanceRepository(AttendanceTransport):
    def __init__(self, conn: ApiConnection):
        self._conn = conn

    @staticmethod
    def _group_path(group_id: str, date: str) -> str:
        return f"{ATTENDANCE_API_PREFIX}/group/{group_id}/date/{date}"

    @staticmethod
    def _parse_snapshot(data) -> GroupAttendanceSnapshot:
        if not isinstance(data, dict):
            raise TransportError("Attendance service returned an unexpected payload")
        try:
            return GroupAttendanceSnapshot.from_dict(data)
        except ValidationError as exc:
            raise TransportError(f"Attendance service returned a malformed snapshot: {exc}") from exc

    async def get_group_attendance(self, group_id: str, date: str) -> GroupAttendanceSnapshot:
        data = await send_json_async(self._conn, "GET", self._group_path(group_id, date))
        return self._parse_snapshot(data)

    async def put_group_attendance(self, group_id: str, date: str, snapshot: GroupAttendanceSnapshot) -> None:
        await send_json_async(
            self._conn,
            "PUT",
            self._group_path(group_id, date),
            payload=snapshot.to_update_payload(),
        )

    async def get_attendance_by_date(self, date: str) -> Sequence[GroupAttendanceSnapshot]:
        data = await send_json_async(self._conn, "GET", f"{ATTENDANCE_API_PREFIX}/date/{date}")
        if data is None:
            return []
        if not isinstance(data, list):
            raise TransportError("Attendance service returned an unexpected payload")
        return [self._parse_snapshot(item) for item in data]

    async def update_child_attendance(self, group_id: str, date: str, child_id: str, status: WireStatus) -> None:
        # The backend has no per-child route; a one-child PUT leaves the others untouched.
        await send_json_async(
            self._conn,
            "PUT",
            self._group_path(group_id, date),
            payload={
                "children": [{"childId": child_id, "status": WireStatus(status).value}],
                "isClosed": False,
            },
        )

    def close(self) -> None:
        self._conn.close()
