"""Translation between the wire and internal attendance status vocabularies.

The wire side is what the backend stores (``"Arrived"``); the internal side is
the lower-case vocabulary used by business logic (``"arrived"``). Incoming
values go through an alias table, so legacy and Hebrew spellings collapse onto
one internal status. Anything unrecognised becomes ``unreported``.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from ..core.enums import InternalStatus, WireStatus
from ..core.exceptions import ValidationError

# Keys are compared after strip() + casefold().
STATUS_ALIASES: Mapping[str, InternalStatus] = {
    "arrived": InternalStatus.ARRIVED,
    "present": InternalStatus.ARRIVED,
    "נוכח": InternalStatus.ARRIVED,
    "missing": InternalStatus.MISSING,
    "absent": InternalStatus.MISSING,
    "נעדר": InternalStatus.MISSING,
    "sick": InternalStatus.SICK,
    "חולה": InternalStatus.SICK,
    "late": InternalStatus.LATE,
    "מאחר": InternalStatus.LATE,
    "vacation": InternalStatus.VACATION,
    "חופשה": InternalStatus.VACATION,
    "unreported": InternalStatus.UNREPORTED,
    "לא דווח": InternalStatus.UNREPORTED,
    "awake": InternalStatus.AWAKE,
    "ער": InternalStatus.AWAKE,
}

_INTERNAL_TO_WIRE: Mapping[InternalStatus, WireStatus] = {
    InternalStatus.ARRIVED: WireStatus.ARRIVED,
    InternalStatus.MISSING: WireStatus.MISSING,
    InternalStatus.SICK: WireStatus.SICK,
    InternalStatus.LATE: WireStatus.LATE,
    InternalStatus.VACATION: WireStatus.VACATION,
    InternalStatus.UNREPORTED: WireStatus.UNREPORTED,
    InternalStatus.AWAKE: WireStatus.AWAKE,
}

PRESENT_STATUSES = frozenset({InternalStatus.ARRIVED, InternalStatus.LATE, InternalStatus.AWAKE})
ABSENT_STATUSES = frozenset({InternalStatus.MISSING, InternalStatus.SICK, InternalStatus.VACATION})


def to_internal(wire_status) -> InternalStatus:
    """Map any incoming status value to the internal vocabulary. Never raises."""
    if isinstance(wire_status, InternalStatus):
        return wire_status
    if isinstance(wire_status, WireStatus):
        wire_status = wire_status.value
    if not isinstance(wire_status, str):
        return InternalStatus.UNREPORTED
    return STATUS_ALIASES.get(wire_status.strip().casefold(), InternalStatus.UNREPORTED)


def to_wire(internal_status: InternalStatus | str) -> WireStatus:
    """Map an internal status to its single wire counterpart."""
    if not isinstance(internal_status, InternalStatus):
        try:
            internal_status = InternalStatus(internal_status)
        except ValueError as exc:
            raise ValidationError(f"Unknown attendance status: {internal_status!r}") from exc
    return _INTERNAL_TO_WIRE[internal_status]


def normalize_wire(raw_status) -> WireStatus:
    """Mapping boundary for incoming records: unknown values become ``Unreported``."""
    return to_wire(to_internal(raw_status))


def is_present(status) -> bool:
    return to_internal(status) in PRESENT_STATUSES


def is_absent(status) -> bool:
    return to_internal(status) in ABSENT_STATUSES


@dataclass(frozen=True)
class AttendanceSummary:
    """Per-status counts for one group day."""

    counts: Mapping[InternalStatus, int] = field(default_factory=dict)
    total: int = 0

    @property
    def present(self) -> int:
        return sum(self.counts.get(s, 0) for s in PRESENT_STATUSES)

    @property
    def absent(self) -> int:
        return sum(self.counts.get(s, 0) for s in ABSENT_STATUSES)

    @property
    def attendance_percentage(self) -> int:
        # Only children marked as arrived count toward the headline percentage.
        if self.total == 0:
            return 0
        return int(self.counts.get(InternalStatus.ARRIVED, 0) * 100 / self.total + 0.5)

    def to_dict(self) -> dict:
        return {
            "counts": {s.value: self.counts.get(s, 0) for s in InternalStatus},
            "present": self.present,
            "absent": self.absent,
            "total": self.total,
            "attendancePercentage": self.attendance_percentage,
        }


def summarize(statuses: Iterable) -> AttendanceSummary:
    tally = Counter(to_internal(s) for s in statuses)
    counts = {s: tally.get(s, 0) for s in InternalStatus}
    return AttendanceSummary(counts=counts, total=sum(tally.values()))
