from datetime import date
from pathlib import Path

from pydantic_settings import BaseSettings


VALID_BACKENDS = {"remote", "local"}
WEEKDAY_NAMES = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | production
    APP_NAME: str = "Smoke-free Calendar"
    DATABASE_URL: str = "sqlite:///data/smokefree.db"
    DATA_DIR: Path = Path("data")
    STORE_BACKEND: str = "remote"  # remote | local
    LOCAL_STORAGE_SLOT: str = "smoking_dates"
    TRACKING_EPOCH: date = date(2025, 5, 14)
    DAILY_SAVINGS: int = 5000
    SAVINGS_GOAL: int = 3_000_000
    TIMEZONE: str | None = None
    FIRST_WEEKDAY: str = "sunday"
    # Monday-first, matching date.weekday().
    WEEKDAY_LABELS: list[str] = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
    ]
    SSE_KEEPALIVE_SECONDS: float = 15.0
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def store_backend(self) -> str:
        return (self.STORE_BACKEND or "").strip().lower()

    @property
    def first_weekday(self) -> int:
        return WEEKDAY_NAMES[(self.FIRST_WEEKDAY or "").strip().lower()]

    @property
    def local_slot_path(self) -> Path:
        return self.DATA_DIR / f"{self.LOCAL_STORAGE_SLOT}.json"

    def validate_configuration(self) -> None:
        errors: list[str] = []
        if self.store_backend not in VALID_BACKENDS:
            errors.append(f"STORE_BACKEND must be one of {sorted(VALID_BACKENDS)}")
        if (self.FIRST_WEEKDAY or "").strip().lower() not in WEEKDAY_NAMES:
            errors.append("FIRST_WEEKDAY must be a weekday name")
        if len(self.WEEKDAY_LABELS) != 7:
            errors.append("WEEKDAY_LABELS must contain exactly seven labels")
        if self.DAILY_SAVINGS <= 0:
            errors.append("DAILY_SAVINGS must be positive")
        if not (self.LOCAL_STORAGE_SLOT or "").strip():
            errors.append("LOCAL_STORAGE_SLOT must not be empty")
        if errors:
            joined = "; ".join(errors)
            raise RuntimeError(f"Invalid configuration: {joined}")


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
