from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Mapping, NamedTuple, Optional

from ..common.datetime_utils import to_iso_date
from ..common.validators import require_non_empty, require_unique
from ..core.enums import InternalStatus, WireStatus
from ..core.exceptions import ValidationError
from .vocabulary import normalize_wire, to_wire


class FetchKey(NamedTuple):
    """Identifies one cacheable unit of fetch work."""

    group_id: str
    date: str

    @classmethod
    def of(cls, group_id: str, date) -> "FetchKey":
        return cls(require_non_empty(group_id, "group_id"), to_iso_date(date))


@dataclass(frozen=True)
class AttendanceChildRecord:
    """One child's status within a group snapshot."""

    child_id: str
    first_name: str
    last_name: str
    status: WireStatus
    timestamp: str
    date_of_birth: Optional[str] = None
    updated_by_user_id: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AttendanceChildRecord":
        if not isinstance(data, Mapping):
            raise ValidationError(f"Attendance record must be an object, got {type(data).__name__}")
        child_id = data.get("childId")
        if not child_id:
            raise ValidationError("Attendance record is missing childId")
        return cls(
            child_id=str(child_id),
            first_name=str(data.get("firstName") or ""),
            last_name=str(data.get("lastName") or ""),
            status=normalize_wire(data.get("status")),
            timestamp=str(data.get("timestamp") or ""),
            date_of_birth=data.get("dateOfBirth"),
            updated_by_user_id=data.get("updatedByUserId"),
        )

    def to_dict(self) -> dict:
        out = {
            "childId": self.child_id,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "status": self.status.value,
            "timestamp": self.timestamp,
            "updatedByUserId": self.updated_by_user_id,
        }
        if self.date_of_birth is not None:
            out["dateOfBirth"] = self.date_of_birth
        return out


@dataclass(frozen=True)
class GroupAttendanceSnapshot:
    """Authoritative attendance for one group on one calendar day.

    Instances are immutable; every change produces a new snapshot.
    """

    group_id: str
    date: str
    account_id: str
    account_name: str
    group_name: str
    is_closed: bool
    children: tuple[AttendanceChildRecord, ...] = ()
    id: Optional[str] = None
    created: Optional[str] = None
    updated: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "children", tuple(self.children))
        require_unique((c.child_id for c in self.children), "childId")

    @property
    def key(self) -> FetchKey:
        return FetchKey(self.group_id, self.date)

    def child(self, child_id: str) -> Optional[AttendanceChildRecord]:
        for record in self.children:
            if record.child_id == child_id:
                return record
        return None

    def status_map(self) -> dict[str, WireStatus]:
        return {c.child_id: c.status for c in self.children}

    def with_statuses(
        self,
        statuses: Mapping[str, InternalStatus | WireStatus | str],
        *,
        timestamp: str,
        updated_by_user_id: Optional[str] = None,
    ) -> "GroupAttendanceSnapshot":
        """Return a copy with the given children's statuses replaced."""
        unknown = set(statuses) - {c.child_id for c in self.children}
        if unknown:
            raise ValidationError(f"Unknown child id(s): {', '.join(sorted(unknown))}")

        children = []
        for record in self.children:
            if record.child_id not in statuses:
                children.append(record)
                continue
            new_status = statuses[record.child_id]
            if not isinstance(new_status, WireStatus):
                new_status = to_wire(new_status)
            children.append(
                replace(
                    record,
                    status=new_status,
                    timestamp=timestamp,
                    updated_by_user_id=updated_by_user_id or record.updated_by_user_id,
                )
            )
        return replace(self, children=tuple(children))

    def with_child_status(self, child_id: str, status, *, timestamp: str, updated_by_user_id: Optional[str] = None):
        return self.with_statuses({child_id: status}, timestamp=timestamp, updated_by_user_id=updated_by_user_id)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GroupAttendanceSnapshot":
        group_id = data.get("groupId")
        if not group_id:
            raise ValidationError("Attendance payload is missing groupId")
        children = data.get("children") or []
        if not isinstance(children, list):
            raise ValidationError("Attendance payload children must be a list")
        is_closed = False if data.get("isClosed") is None else data["isClosed"]
        if not isinstance(is_closed, bool):
            raise ValidationError(f"Attendance payload isClosed must be a boolean, got {is_closed!r}")
        return cls(
            group_id=str(group_id),
            date=to_iso_date(str(data.get("date") or "")[:10]),
            account_id=str(data.get("accountId") or ""),
            account_name=str(data.get("accountName") or ""),
            group_name=str(data.get("groupName") or ""),
            is_closed=is_closed,
            children=tuple(AttendanceChildRecord.from_dict(c) for c in children),
            id=data.get("id"),
            created=data.get("created"),
            updated=data.get("updated"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "groupId": self.group_id,
            "groupName": self.group_name,
            "accountId": self.account_id,
            "accountName": self.account_name,
            "date": self.date,
            "children": [c.to_dict() for c in self.children],
            "isClosed": self.is_closed,
            "created": self.created,
            "updated": self.updated,
        }

    def to_update_payload(self) -> dict:
        """Body of the PUT the backend expects for a full replacement."""
        return {
            "children": [{"childId": c.child_id, "status": c.status.value} for c in self.children],
            "isClosed": self.is_closed,
        }
