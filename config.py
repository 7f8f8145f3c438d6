import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        environment: str,
        token_secret: str,
        token_max_age_secs: int,
        timezone: str,
        log_level: str,
        reconcile_enabled: bool,
        client_url: str,
    ) -> None:
        self.database_url = database_url
        self.environment = environment
        self.token_secret = token_secret
        self.token_max_age_secs = token_max_age_secs
        self.timezone = timezone
        self.log_level = log_level
        self.reconcile_enabled = reconcile_enabled
        self.client_url = client_url

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("FINANCE_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "finance.db"
    database_url = os.getenv("FINANCE_DATABASE_URL", f"sqlite:///{default_db}")
    environment = os.getenv("FINANCE_ENV", "development")
    token_secret = os.getenv(
        "FINANCE_TOKEN_SECRET",
        "3f9c1e0b7a5d4c2e8b6a9f1d0c3e5a7b9d1f3e5c7a9b1d3f5e7c9a1b3d5f7e9c",
    )
    token_max_age_secs = int(os.getenv("FINANCE_TOKEN_MAX_AGE_SECS", "900"))
    timezone = os.getenv("FINANCE_TIMEZONE", "UTC")
    log_level = os.getenv("FINANCE_LOG_LEVEL", "INFO").upper()
    reconcile_enabled = _env_flag("FINANCE_RECONCILE_ENABLED", True)
    client_url = os.getenv("FINANCE_CLIENT_URL", "http://localhost:5173")
    return Settings(
        database_url=database_url,
        environment=environment,
        token_secret=token_secret,
        token_max_age_secs=token_max_age_secs,
        timezone=timezone,
        log_level=log_level,
        reconcile_enabled=reconcile_enabled,
        client_url=client_url,
    )
