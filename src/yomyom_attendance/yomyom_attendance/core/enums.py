from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles allowed to touch attendance."""

    STAFF = "staff"
    PARENT = "parent"


class WireStatus(str, Enum):
    """Status values as the backend sends and receives them."""

    ARRIVED = "Arrived"
    MISSING = "Missing"
    SICK = "Sick"
    LATE = "Late"
    VACATION = "Vacation"
    UNREPORTED = "Unreported"
    AWAKE = "Awake"


class InternalStatus(str, Enum):
    """Lower-case status values used by business and display logic."""

    ARRIVED = "arrived"
    MISSING = "missing"
    SICK = "sick"
    LATE = "late"
    VACATION = "vacation"
    UNREPORTED = "unreported"
    AWAKE = "awake"
