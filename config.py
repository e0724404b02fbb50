from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    openai_api_key: Optional[str] = None
    model: str = "gpt-4o-mini"
    planner_model: str = "gpt-4o"
    data_dir: str = "data"
    database_url: str = "sqlite:///./aurafit.db"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            openai_api_key=os.getenv("OPENAI_API_KEY"),
            model=os.getenv("AURAFIT_MODEL", cls.model),
            planner_model=os.getenv("AURAFIT_PLANNER_MODEL", cls.planner_model),
            data_dir=os.getenv("AURAFIT_DATA_DIR", cls.data_dir),
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            log_level=os.getenv("LOG_LEVEL", cls.log_level),
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for the running process, read once from the environment."""
    return Settings.from_env()
