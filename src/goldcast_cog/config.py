# config.py
# Process configuration. Read once from the environment (and .env, if present).

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_API_URL = "https://customapi.goldcast.io/"


class Settings(BaseModel):
    api_url: str = DEFAULT_API_URL
    timeout: float = Field(default=30.0, gt=0, description="HTTP timeout in seconds.")
    redis_url: str | None = Field(default=None, description="Unset disables the response cache.")
    cache_ttl: int = Field(default=55, gt=0, description="Cache entry lifetime in seconds.")
    host: str = "0.0.0.0"
    port: int = 28866
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        env = {
            "api_url": os.getenv("GOLDCAST_API_URL"),
            "timeout": os.getenv("GOLDCAST_TIMEOUT"),
            "redis_url": os.getenv("REDIS_URL") or None,
            "cache_ttl": os.getenv("CACHE_TTL"),
            "host": os.getenv("COG_HOST"),
            "port": os.getenv("COG_PORT"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        return cls.model_validate({k: v for k, v in env.items() if v is not None})
