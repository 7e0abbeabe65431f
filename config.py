"""
Runtime configuration for the Kindify API.

Values come from environment variables; a local .env file is loaded first so
development setups don't need to export anything.
"""
import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()


def _split_origins(raw: str) -> List[str]:
    return [o.strip() for o in raw.split(",") if o.strip()] or ["*"]


@dataclass
class Settings:
    database_url: Optional[str] = None
    database_name: Optional[str] = None
    history_days: int = 30
    cors_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"
    port: int = 8000

    def __post_init__(self):
        if self.history_days < 1:
            raise ValueError(f"HISTORY_DAYS must be at least 1, got {self.history_days}")

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            database_url=os.getenv("DATABASE_URL"),
            database_name=os.getenv("DATABASE_NAME"),
            history_days=int(os.getenv("HISTORY_DAYS", 30)),
            cors_origins=_split_origins(os.getenv("CORS_ORIGINS", "*")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            port=int(os.getenv("PORT", 8000)),
        )


settings = Settings.from_env()
