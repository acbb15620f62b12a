"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting has a default; the planner works with no environment at all
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - BINDER_ prefix keeps the planner's variables apart from the host application's
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from binder_planner.core.grid_config import GRID_CONFIGS


class Settings(BaseSettings):
    """Planner settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BINDER_", env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Binder defaults
    default_grid_size: str = "3x3"
    default_max_pages: int = 100

    @field_validator("default_grid_size")
    @classmethod
    def known_grid_size(cls, v: str) -> str:
        if v not in GRID_CONFIGS:
            raise ValueError(f"unknown grid size {v!r}; expected one of {sorted(GRID_CONFIGS)}")
        return v

    # Variant estimate shown before the item list is fetched
    variant_estimate_ratio: float = 0.6

    # Item-list cache
    item_cache_max_entries: int = 32
    item_cache_ttl_seconds: float = 900.0

    # History
    history_discard_redo_on_record: bool = True

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
