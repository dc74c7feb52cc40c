"""Vesting - Application configuration via environment variables."""

from __future__ import annotations

import logging
from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings


class VestingSettings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {
        "env_prefix": "VESTING_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    # ── Vault ──────────────────────────────────────────────────
    vault_name: str = "vesting"
    basis_points: int = 10_000
    share_symbol: str = "vLOCK"
    share_name: str = "Vesting Share"
    custody_wallet: str = "vesting_custody"

    # ── Persistence ────────────────────────────────────────────
    state_path: str = "vesting_state.json"

    # ── Logging ────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    @field_validator("basis_points")
    @classmethod
    def _positive_basis_points(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("basis_points must be positive")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"unknown log level {value!r}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> VestingSettings:
    return VestingSettings()


def configure_logging(settings: VestingSettings | None = None) -> None:
    """Apply the configured level and format to the `vesting` logger tree."""
    settings = settings or get_settings()
    logging.basicConfig(format=settings.log_format)
    logging.getLogger("vesting").setLevel(settings.log_level)
