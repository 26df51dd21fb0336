from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional

from .api.connection import ApiConfig, ApiConnection
from .attendance.http_attendance_repository import HttpAttendanceRepository
from .attendance.session import AttendanceSessionRegistry, TransportFactory


@dataclass(frozen=True)
class Container:
    api_config: ApiConfig
    sessions: AttendanceSessionRegistry


def http_transport_factory(config: ApiConfig) -> TransportFactory:
    def factory(access_token: Optional[str]) -> HttpAttendanceRepository:
        return HttpAttendanceRepository(ApiConnection(replace(config, access_token=access_token)))

    return factory


def build_container(*, api_config: dict, transport_factory: TransportFactory | None = None) -> Container:
    config = ApiConfig(
        base_url=str(api_config["base_url"]),
        timeout_seconds=float(api_config.get("timeout_seconds", 10)),
    )
    sessions = AttendanceSessionRegistry(transport_factory or http_transport_factory(config))
    return Container(api_config=config, sessions=sessions)
