import os


def _flag(name: str, default: str) -> bool:
    return bool(int(os.environ.get(name, default)))


class Config:
    """Settings shared by every environment; environment modules override per key."""

    SECRET_KEY = os.environ.get("SECRET_KEY", "")
    TOKEN_SALT = os.environ.get("TOKEN_SALT", "institute-session")
    TOKEN_MAX_AGE_SECONDS = int(os.environ.get("TOKEN_MAX_AGE_SECONDS", str(7 * 24 * 60 * 60)))

    DB_USER = os.environ.get("DB_USER", "root")
    DB_PASSWORD = os.environ.get("DB_PASSWORD", "")
    DB_HOST = os.environ.get("DB_HOST", "localhost")
    DB_PORT = int(os.environ.get("DB_PORT", "3306"))
    DB_NAME = os.environ.get("DB_NAME", "institute_db")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Alert and eligibility cut-offs
    HIGH_DUE_THRESHOLD = os.environ.get("HIGH_DUE_THRESHOLD", "5000")
    EXAM_ELIGIBILITY_THRESHOLD = int(os.environ.get("EXAM_ELIGIBILITY_THRESHOLD", "75"))
    CERTIFICATE_ATTENDANCE_THRESHOLD = int(os.environ.get("CERTIFICATE_ATTENDANCE_THRESHOLD", "75"))
    CONSECUTIVE_ABSENCE_WINDOW = int(os.environ.get("CONSECUTIVE_ABSENCE_WINDOW", "3"))
    DROP_RISK_WINDOW = int(os.environ.get("DROP_RISK_WINDOW", "5"))
    LATE_PAYMENT_GRACE_DAYS = int(os.environ.get("LATE_PAYMENT_GRACE_DAYS", "7"))
    COUNT_INACTIVE_DUES = _flag("COUNT_INACTIVE_DUES", "0")

    SALARY_REPORT_WORKERS = int(os.environ.get("SALARY_REPORT_WORKERS", "4"))

    @classmethod
    def db_config(cls) -> dict:
        return {
            "host": cls.DB_HOST,
            "port": cls.DB_PORT,
            "user": cls.DB_USER,
            "password": cls.DB_PASSWORD,
            "database": cls.DB_NAME,
        }


SECRET_KEY = Config.SECRET_KEY
TOKEN_SALT = Config.TOKEN_SALT
TOKEN_MAX_AGE_SECONDS = Config.TOKEN_MAX_AGE_SECONDS
DB_CONFIG = Config.db_config()
LOG_LEVEL = Config.LOG_LEVEL

HIGH_DUE_THRESHOLD = Config.HIGH_DUE_THRESHOLD
EXAM_ELIGIBILITY_THRESHOLD = Config.EXAM_ELIGIBILITY_THRESHOLD
CERTIFICATE_ATTENDANCE_THRESHOLD = Config.CERTIFICATE_ATTENDANCE_THRESHOLD
CONSECUTIVE_ABSENCE_WINDOW = Config.CONSECUTIVE_ABSENCE_WINDOW
DROP_RISK_WINDOW = Config.DROP_RISK_WINDOW
LATE_PAYMENT_GRACE_DAYS = Config.LATE_PAYMENT_GRACE_DAYS
COUNT_INACTIVE_DUES = Config.COUNT_INACTIVE_DUES
SALARY_REPORT_WORKERS = Config.SALARY_REPORT_WORKERS
