from __future__ import annotations

import asyncio
import logging
from functools import wraps

from flask import Flask, g, jsonify, request, session

from ..core.enums import Role
from ..core.exceptions import (
    AttendanceLoadingError,
    AuthorizationError,
    ClosedAttendanceError,
    TransportError,
    ValidationError,
)
from ..container import Container

logger = logging.getLogger(__name__)


def register(app: Flask, container: Container) -> None:
    sessions = container.sessions

    def _fail(message: str, status: int):
        return jsonify({"success": False, "message": message}), status

    def login_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            user_id = session.get("user_id")
            current = sessions.get(user_id) if user_id else None
            if current is None:
                return _fail("Please sign in to continue", 401)
            g.attendance = current
            with current.lock:
                return view(*args, **kwargs)

        return wrapper

    def role_required(role: Role):
        def decorator(view):
            @wraps(view)
            def wrapper(*args, **kwargs):
                if g.attendance.role != role:
                    return _fail(f"Only {role.value} users may do this", 403)
                return view(*args, **kwargs)

            return login_required(wrapper)

        return decorator

    staff_required = role_required(Role.STAFF)
    parent_required = role_required(Role.PARENT)

    @app.errorhandler(ValidationError)
    def _validation_error(e):
        return _fail(str(e), 400)

    @app.errorhandler(AuthorizationError)
    def _authorization_error(e):
        return _fail(str(e), 403)

    @app.errorhandler(ClosedAttendanceError)
    def _closed_error(e):
        return _fail(str(e), 409)

    @app.errorhandler(AttendanceLoadingError)
    def _loading_error(e):
        return _fail(str(e), 503)

    @app.errorhandler(TransportError)
    def _transport_error(e):
        logger.warning("attendance backend error on %s: %s", request.path, e)
        return _fail(str(e), 502)

    @app.route("/api/session", methods=["POST"], endpoint="session_start")
    def session_start():
        data = request.get_json(silent=True) or {}
        current = sessions.start(
            user_id=str(data.get("userId") or ""),
            role=data.get("role", ""),
            group_id=data.get("groupId"),
            child_ids=data.get("childIds") or (),
            access_token=data.get("accessToken"),
        )
        session.clear()
        session["user_id"] = current.user_id
        session["role"] = current.role.value
        if current.role == Role.STAFF:
            with current.lock:
                asyncio.run(current.store.init(current.group_id))
        return jsonify({"success": True, "userId": current.user_id, "role": current.role.value}), 201

    @app.route("/api/session", methods=["DELETE"], endpoint="session_end")
    def session_end():
        user_id = session.get("user_id")
        if user_id:
            sessions.end(user_id)
        session.clear()
        return jsonify({"success": True})

    @app.route("/api/attendance/<group_id>/<date>", methods=["GET"], endpoint="attendance_day")
    @login_required
    def attendance_day(group_id: str, date: str):
        current = g.attendance
        if current.role == Role.STAFF:
            current.require_group(group_id)
        if current.role == Role.PARENT:
            asyncio.run(current.store.fetch(group_id, date))
            view = current.parent.view(group_id, date)
        else:
            view = asyncio.run(current.staff.load_day(group_id, date))
        return jsonify({"success": True, "data": view.to_dict()})

    @app.route("/api/attendance/<group_id>/<date>", methods=["PUT"], endpoint="attendance_bulk_update")
    @staff_required
    def attendance_bulk_update(group_id: str, date: str):
        g.attendance.require_group(group_id)
        data = request.get_json(silent=True) or {}
        changes = {}
        for item in data.get("children") or ():
            child_id = item.get("childId")
            if not child_id:
                raise ValidationError("Each change needs a childId")
            changes[str(child_id)] = item.get("status", "")
        view = asyncio.run(
            g.attendance.staff.set_statuses(group_id, date, changes, user_id=g.attendance.user_id)
        )
        return jsonify({"success": True, "data": view.to_dict()})

    @app.route(
        "/api/attendance/<group_id>/<date>/children/<child_id>",
        methods=["POST"],
        endpoint="attendance_child_update",
    )
    @parent_required
    def attendance_child_update(group_id: str, date: str, child_id: str):
        current = g.attendance
        current.require_child(child_id)
        data = request.get_json(silent=True) or {}
        view = asyncio.run(
            current.parent.mark_child(group_id, date, child_id, data.get("status", ""), user_id=current.user_id)
        )
        return jsonify({"success": True, "data": view.to_dict()})

    @app.route("/api/attendance/refresh", methods=["POST"], endpoint="attendance_refresh")
    @login_required
    def attendance_refresh():
        current = g.attendance
        asyncio.run(current.store.refresh())
        key = current.store.key
        if key is None:
            return jsonify({"success": True, "data": None})
        view = current.parent.view(key.group_id, key.date)
        return jsonify({"success": True, "data": view.to_dict()})

    @app.route("/api/attendance/date/<date>/children", methods=["GET"], endpoint="attendance_my_children")
    @parent_required
    def attendance_my_children(date: str):
        current = g.attendance
        requested = request.args.getlist("childId") or sorted(current.child_ids)
        for child_id in requested:
            current.require_child(child_id)
        days = asyncio.run(current.parent.children_for_day(date, requested))
        return jsonify({"success": True, "data": [d.to_dict() for d in days]})
