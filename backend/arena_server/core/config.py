from __future__ import annotations

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "Arena Live Server"
    host: str = "127.0.0.1"
    port: int = 8080
    registration_open: bool = True
    log_level: str = "INFO"

    class Config:
        env_prefix = "ARENA_SERVER_"
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
