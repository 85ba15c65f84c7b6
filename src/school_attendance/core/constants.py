"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
"""

# Students with fewer recorded sessions are never reported as low attendance.
LOW_ATTENDANCE_MIN_SESSIONS = 3
DEFAULT_LOW_ATTENDANCE_THRESHOLD = 70

DEFAULT_HISTORY_LIMIT = 50
RECENT_SESSIONS_LIMIT = 10
QUICK_SESSION_MINUTES = 60
WEEKLY_TREND_DAYS = 7
PASSWORD_MIN_LENGTH = 6
