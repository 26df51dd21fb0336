from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from ..common.validators import require_non_empty
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, ValidationError
from .closure import ClosureGate
from .overlay import OptimisticOverlay
from .repository import AttendanceTransport
from .service import AttendanceService, ParentAttendanceService
from .store import AttendanceStore

logger = logging.getLogger(__name__)

TransportFactory = Callable[[Optional[str]], AttendanceTransport]


@dataclass
class AttendanceSession:
    """Everything one signed-in user needs; never shared between users."""

    user_id: str
    role: Role
    group_id: Optional[str]
    child_ids: frozenset
    transport: AttendanceTransport
    store: AttendanceStore
    gate: ClosureGate
    overlay: OptimisticOverlay
    staff: AttendanceService = field(repr=False)
    parent: ParentAttendanceService = field(repr=False)
    # Held for a whole request; the store and overlay expect one driver at a time.
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def require_role(self, role: Role) -> None:
        if self.role != role:
            raise AuthorizationError(f"Only {role.value} users may do this")

    def require_group(self, group_id: str) -> None:
        if self.group_id != group_id:
            raise AuthorizationError("You can only manage your own group")

    def require_child(self, child_id: str) -> None:
        if child_id not in self.child_ids:
            raise AuthorizationError("You can only update your own children")

    def close(self) -> None:
        self.overlay.detach()
        self.overlay.clear()
        self.store.clear()
        self.gate.reset()
        close = getattr(self.transport, "close", None)
        if close is not None:
            close()


def build_session(
    transport: AttendanceTransport,
    *,
    user_id: str,
    role: Role,
    group_id: Optional[str] = None,
    child_ids=(),
) -> AttendanceSession:
    gate = ClosureGate()
    store = AttendanceStore(transport, gate=gate)
    overlay = OptimisticOverlay(store)
    return AttendanceSession(
        user_id=user_id,
        role=role,
        group_id=group_id,
        child_ids=frozenset(child_ids),
        transport=transport,
        store=store,
        gate=gate,
        overlay=overlay,
        staff=AttendanceService(store, gate),
        parent=ParentAttendanceService(store, gate, overlay, transport),
    )


class AttendanceSessionRegistry:
    """Per-user sessions, created on sign-in and dropped on sign-out.

    Role, group and children are what the signed-in client declared about
    itself. The checks on :class:`AttendanceSession` only keep a client inside
    those claims; the backend validates every call against the bearer token
    passed to the transport factory and remains the authority on access.
    """

    def __init__(self, transport_factory: TransportFactory):
        self._transport_factory = transport_factory
        self._sessions: Dict[str, AttendanceSession] = {}

    def start(
        self,
        *,
        user_id: str,
        role: Role | str,
        group_id: Optional[str] = None,
        child_ids=(),
        access_token: Optional[str] = None,
    ) -> AttendanceSession:
        user_id = require_non_empty(str(user_id or ""), "userId")
        try:
            role = Role(role)
        except ValueError as exc:
            raise ValidationError(f"Unknown role: {role!r}") from exc
        if role == Role.STAFF and not group_id:
            raise ValidationError("groupId is required for staff")

        self.end(user_id)
        session = build_session(
            self._transport_factory(access_token),
            user_id=user_id,
            role=role,
            group_id=group_id,
            child_ids=child_ids,
        )
        self._sessions[user_id] = session
        logger.info("attendance session started for user=%s role=%s", user_id, role.value)
        return session

    def get(self, user_id: str) -> Optional[AttendanceSession]:
        return self._sessions.get(str(user_id))

    def end(self, user_id: str) -> None:
        session = self._sessions.pop(str(user_id), None)
        if session is not None:
            with session.lock:
                session.close()
            logger.info("attendance session ended for user=%s", user_id)
