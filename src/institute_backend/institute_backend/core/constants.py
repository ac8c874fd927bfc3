"""Constants and defaults.

Note: Keep constants here to avoid magic numbers spread across code.
Thresholds are defaults only; deployments override them through settings.
"""

DEFAULT_TOKEN_MAX_AGE_SECONDS = 7 * 24 * 60 * 60
DEFAULT_TOKEN_SALT = "institute-session"
MIN_PASSWORD_LENGTH = 6

DEFAULT_PAGE_LIMIT = 20
DEFAULT_ATTENDANCE_PAGE_LIMIT = 30
MAX_PAGE_LIMIT = 200

HIGH_DUE_THRESHOLD = 5000
EXAM_ELIGIBILITY_THRESHOLD = 75
CERTIFICATE_ATTENDANCE_THRESHOLD = 75
CONSECUTIVE_ABSENCE_WINDOW = 3
DROP_RISK_WINDOW = 5
LATE_PAYMENT_GRACE_DAYS = 7
COUNT_INACTIVE_DUES = False

SALARY_BREAKDOWN_MONTHS = 6
SALARY_REPORT_WORKERS = 4

RECEIPT_SEQUENCE_WIDTH = 4
STUDENT_CODE_SEQUENCE_WIDTH = 3

# VARCHAR(40) in attendance_records.time_slot and students.batch_time
TIME_SLOT_MAX_LENGTH = 40
