"""Example: drive the attendance core directly, without Flask.

Controllers stay thin; the synchronization logic lives in the store, overlay and services.
"""

import asyncio
import importlib

from config import get_settings_module

from src.yomyom_attendance.yomyom_attendance.container import build_container


async def main():
    settings = importlib.import_module(get_settings_module())
    container = build_container(api_config=settings.API_CONFIG)
    session = container.sessions.start(user_id="staff-1", role="staff", group_id="group-1")
    view = await session.staff.load_day("group-1", "2024-01-15")
    print(view.to_dict())
    container.sessions.end("staff-1")


if __name__ == "__main__":
    asyncio.run(main())
