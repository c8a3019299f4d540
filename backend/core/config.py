import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


def _get_weekdays(value: str | None, default: tuple[int, ...]) -> frozenset[int]:
    if value is None or not value.strip():
        return frozenset(default)
    days = {int(part) for part in value.split(",") if part.strip()}
    invalid = [day for day in days if not 0 <= day <= 6]
    if invalid:
        raise ValueError(f"WORKING_DAYS must use weekday numbers 0-6, got {sorted(invalid)}.")
    return frozenset(days)


APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
SQL_ECHO = _get_bool(os.getenv("SQL_ECHO"), default=False)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./requests.db")

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:4200").split(",")
    if origin.strip()
]

SESSION_TTL_MINUTES = _get_int(os.getenv("SESSION_TTL_MINUTES"), 20)
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
SESSION_COOKIE_SECURE = _get_bool(os.getenv("SESSION_COOKIE_SECURE"), default=False)

PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", "http://localhost:8000").rstrip("/")
INSTITUTION_EMAIL_DOMAIN = os.getenv("INSTITUTION_EMAIL_DOMAIN", "udst.edu.qa")

# Business calendar used by the queue estimator. Weekdays follow date.weekday(): Monday is 0.
WORK_DAY_START = _get_int(os.getenv("WORK_DAY_START"), 8)
WORK_DAY_END = _get_int(os.getenv("WORK_DAY_END"), 15)
WORKING_DAYS = _get_weekdays(os.getenv("WORKING_DAYS"), (0, 1, 2, 3, 4))
MINUTES_PER_REQUEST = _get_int(os.getenv("MINUTES_PER_REQUEST"), 20)


def validate_runtime_config() -> None:
    if not 0 <= WORK_DAY_START < WORK_DAY_END <= 24:
        raise RuntimeError("WORK_DAY_START must be before WORK_DAY_END and both within 0-24.")
    if not WORKING_DAYS:
        raise RuntimeError("WORKING_DAYS must name at least one weekday.")
    if MINUTES_PER_REQUEST <= 0:
        raise RuntimeError("MINUTES_PER_REQUEST must be positive.")
    if APP_ENV.lower() == "production" and not SESSION_COOKIE_SECURE:
        raise RuntimeError("SESSION_COOKIE_SECURE must be enabled in production.")
