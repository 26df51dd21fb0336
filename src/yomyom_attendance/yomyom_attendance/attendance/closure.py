from __future__ import annotations

import logging
from typing import Optional, Union

from ..core.exceptions import ClosedAttendanceError
from .model import FetchKey, GroupAttendanceSnapshot

logger = logging.getLogger(__name__)

GateTarget = Union[FetchKey, GroupAttendanceSnapshot]


class ClosureGate:
    """Read-and-enforce view of the per-day closure flag.

    Closed is terminal: once a key has been seen closed it stays closed for
    this gate, whatever later snapshots claim.
    """

    def __init__(self):
        self._closed: set[FetchKey] = set()

    def observe(self, snapshot: Optional[GroupAttendanceSnapshot]) -> None:
        if snapshot is not None and snapshot.is_closed and snapshot.key not in self._closed:
            logger.info("attendance closed for group=%s date=%s", snapshot.group_id, snapshot.date)
            self._closed.add(snapshot.key)

    def is_closed(self, target: GateTarget) -> bool:
        if isinstance(target, GroupAttendanceSnapshot):
            self.observe(target)
            return target.key in self._closed
        return FetchKey(*target) in self._closed

    def ensure_open(self, target: GateTarget) -> None:
        if self.is_closed(target):
            key = target.key if isinstance(target, GroupAttendanceSnapshot) else FetchKey(*target)
            raise ClosedAttendanceError(key.group_id, key.date)

    def reset(self) -> None:
        self._closed.clear()
