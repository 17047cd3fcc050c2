from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings


class ClientSettings(BaseSettings):
    app_name: str = "Arena Live"
    server_url: str = "ws://localhost:8080/ws"

    # Reconnection backoff, in milliseconds.
    base_delay_ms: int = 1000
    max_delay_ms: int = 3000
    growth_factor: float = 1.5
    connect_timeout_ms: int = 2000

    # "permanent": the form stays locked after the first submit, even when the
    # frame was dropped. "retry_on_drop": a dropped frame unlocks the form again.
    form_lock_policy: Literal["permanent", "retry_on_drop"] = "permanent"

    log_level: str = "INFO"

    class Config:
        env_prefix = "ARENA_"
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> ClientSettings:
    return ClientSettings()


settings = get_settings()
