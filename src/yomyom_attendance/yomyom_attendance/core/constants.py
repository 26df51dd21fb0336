"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

DATE_FORMAT = "%Y-%m-%d"

ATTENDANCE_API_PREFIX = "/api/v1/attendance"
DEFAULT_HTTP_TIMEOUT_SECONDS = 10.0

FETCH_ERROR_MESSAGE = "Failed to fetch attendance data"
UPDATE_ERROR_MESSAGE = "Failed to update attendance data"
CHILD_UPDATE_ERROR_MESSAGE = "Failed to update the child's attendance, please try again"
