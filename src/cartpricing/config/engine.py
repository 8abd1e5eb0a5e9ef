"""Pricing engine tuning values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_float

DEFAULT_DEBOUNCE_MS = 800.0
DEFAULT_AUTOSAVE_DEBOUNCE_MS = 1500.0
DEFAULT_FETCH_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Timing knobs for one editing session."""

    debounce_seconds: float = DEFAULT_DEBOUNCE_MS / 1000
    autosave_debounce_seconds: float = DEFAULT_AUTOSAVE_DEBOUNCE_MS / 1000
    fetch_timeout_seconds: float | None = DEFAULT_FETCH_TIMEOUT_SECONDS


def get_engine_config() -> EngineConfig:
    return EngineConfig(
        debounce_seconds=env_float("PRICING_DEBOUNCE_MS", DEFAULT_DEBOUNCE_MS) / 1000,
        autosave_debounce_seconds=(
            env_float("PRICING_AUTOSAVE_DEBOUNCE_MS", DEFAULT_AUTOSAVE_DEBOUNCE_MS) / 1000
        ),
        fetch_timeout_seconds=env_float(
            "PRICING_FETCH_TIMEOUT_SECONDS", DEFAULT_FETCH_TIMEOUT_SECONDS
        ),
    )
