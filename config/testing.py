SECRET_KEY = "test-secret"

DB_CONFIG = {
    "host": "localhost",
    "port": 3306,
    "user": "root",
    "password": "",
    "database": "school_attendance_test",
}

DEBUG = False
TESTING = True
LOG_LEVEL = "WARNING"

STORAGE = "memory"

AUTO_INIT_DB = False
AUTO_SEED_DB = False

LOW_ATTENDANCE_THRESHOLD = 70
ATOMIC_BULK_ATTENDANCE = False
