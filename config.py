import os
from functools import lru_cache
from pathlib import Path

# Budget classification thresholds, in percent of the budget limit.
UNDER_BUDGET_PCT = 50
APPROACHING_PCT = 80
ALMOST_REACHED_PCT = 90

TOP_CATEGORY_LIMIT = 5
TREND_MONTHS = 6


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        identity_secret: str,
        token_max_age_hours: int,
        log_level: str,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.identity_secret = identity_secret
        self.token_max_age_hours = token_max_age_hours
        self.log_level = log_level


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    identity_secret = os.getenv(
        "FINANCE_IDENTITY_SECRET",
        "4c1d7e0b9a2f46f38e5b27d1c0a9e6f2b8d3c7a1e5f9042d6b3a8c1e7f2d9b05",
    )
    token_max_age_hours = int(os.getenv("FINANCE_TOKEN_MAX_AGE_HOURS", "24"))
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    return Settings(
        database_url=database_url,
        timezone=timezone,
        identity_secret=identity_secret,
        token_max_age_hours=token_max_age_hours,
        log_level=log_level,
    )
