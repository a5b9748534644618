from pydantic_settings import BaseSettings
from pathlib import Path


class Settings(BaseSettings):
    ENVIRONMENT: str = "development"  # development | test | staging | production
    APP_NAME: str = "Fitness Report Data"
    DATABASE_URL: str = "sqlite:///data/reportdata.db"
    DATA_DIR: Path = Path("data")
    CORS_ORIGINS: list[str] = [
        "http://localhost:8050",
        "http://localhost:8001",
    ]
    LOG_LEVEL: str = "INFO"
    DEFAULT_TIMEZONE: str = "UTC"
    # Report data updates are deferred so bursts of edits collapse into one run.
    REPORTDATA_UPDATE_DELAY_MILLIS: int = 300000
    REPORTDATA_CLEANUP_FREQUENCY_MILLIS: int = 3600000

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    @property
    def is_test(self) -> bool:
        return (self.ENVIRONMENT or "").strip().lower() == "test"

    @property
    def scheduler_log_level(self) -> str:
        # Tests sweep every few milliseconds.
        return "WARNING" if self.is_test else (self.LOG_LEVEL or "INFO").upper()

    @property
    def update_delay_seconds(self) -> float:
        return max(int(self.REPORTDATA_UPDATE_DELAY_MILLIS), 0) / 1000.0

    @property
    def cleanup_frequency_seconds(self) -> float:
        return max(int(self.REPORTDATA_CLEANUP_FREQUENCY_MILLIS), 1) / 1000.0


settings = Settings()
settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
