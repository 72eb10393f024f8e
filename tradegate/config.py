from datetime import tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Trading rules (limits, mode, override windows) live in the settings
    # table and are edited at runtime; only process-level config goes here.

    # Day boundaries (IANA name, e.g. "Europe/Berlin"); None = host local time
    timezone: str | None = None

    # App
    api_secret_key: str
    database_url: str = "sqlite+aiosqlite:///./journal.db"
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    def get_tzinfo(self) -> tzinfo | None:
        """ZoneInfo for TIMEZONE, or None to follow the host's local rules per date."""
        if self.timezone:
            return ZoneInfo(self.timezone)
        return None
