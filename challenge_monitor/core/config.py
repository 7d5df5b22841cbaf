import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Auto-skip reconciliation
    AUTO_SKIP_CUTOFF_HOUR: int = 3  # before this hour the job reconciles yesterday
    AUTO_SKIP_NOTE: str = "Automatically skipped"

    # Progress / completion
    COMPLETION_NOTE: str = "completed by system"

    # Challenge creation
    SEED_PENDING_DAYS: bool = False  # pre-seed one PENDING event per day of the range

    # Manual logs
    MAX_NOTES_LENGTH: int = 500

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate configuration values.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("challenge_monitor")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    problems = []
    if not 0 <= cfg.AUTO_SKIP_CUTOFF_HOUR <= 23:
        problems.append(f"AUTO_SKIP_CUTOFF_HOUR must be within 0..23 (got {cfg.AUTO_SKIP_CUTOFF_HOUR})")
    if cfg.MAX_NOTES_LENGTH <= 0:
        problems.append(f"MAX_NOTES_LENGTH must be positive (got {cfg.MAX_NOTES_LENGTH})")
    if not cfg.AUTO_SKIP_NOTE.strip():
        problems.append("AUTO_SKIP_NOTE must not be blank")

    if problems:
        message = f"Invalid configuration: {'; '.join(problems)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)
        return False

    return True
