import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./riding_school.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

LIST_WINDOW_DAYS = int(os.getenv("LIST_WINDOW_DAYS", "30"))

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), default=["*"])
CORS_ALLOW_METHODS = ["GET", "POST", "DELETE", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Content-Type"]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

def validate_runtime_config() -> None:
    if LIST_WINDOW_DAYS <= 0:
        raise RuntimeError("LIST_WINDOW_DAYS must be a positive number of days.")
    if APP_ENV.lower() == "production" and DATABASE_URL.startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at a server database in production.")
