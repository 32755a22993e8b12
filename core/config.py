"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for the SSO service happen here. No module
should call os.getenv() or os.environ.get() directly -- import get_settings()
instead. The one exception is CONFIG_PATH, which selects the env file itself.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. This is
      the official FastAPI dependency injection pattern for config.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional env file. Field names map to env var names
      (e.g. token_ttl -> TOKEN_TTL). Type coercion and validation are built in.
      TOKEN_TTL accepts plain seconds ("3600"), a unit suffix ("15m", "1h",
      "7d") or an ISO 8601 duration ("PT1H").

  @model_validator(mode="after"): Cross-field validation after all fields are
      resolved. Rejects settings that would break token or hashing invariants.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import os
import re
from datetime import timedelta
from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("sso.config")

# Range bcrypt.gensalt() accepts.
MIN_BCRYPT_ROUNDS = 4
MAX_BCRYPT_ROUNDS = 31

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhd]?)\s*$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and an env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    env: Literal["local", "dev", "prod"] = "local"
    database_url: str = "sqlite:///./sso.db"

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl: timedelta = timedelta(hours=1)
    # Cost of every registration and every login. Each +1 doubles the work.
    bcrypt_rounds: int = 10

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 8000
    # JSON list in the environment, e.g. ALLOWED_HOSTS='["sso.internal"]'.
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    request_timeout_seconds: float = 5.0

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("token_ttl", mode="before")
    @classmethod
    def parse_short_duration(cls, value):
        """Turn "900", "15m", "1h" into seconds; leave anything else to pydantic."""
        if isinstance(value, str):
            match = _DURATION_RE.match(value)
            if match:
                return int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        return value

    @model_validator(mode="after")
    def validate_auth_settings(self) -> "Settings":
        """Refuse to start with settings that break token or hashing invariants.

        token_ttl must be positive: a token's exp has to be strictly later
        than the instant it was issued.
        bcrypt_rounds must be in the range bcrypt itself accepts.
        request_timeout_seconds must be positive or every request would be
        cancelled before it starts.
        """
        if self.token_ttl <= timedelta(0):
            raise ValueError("TOKEN_TTL must be a positive duration.")
        if not MIN_BCRYPT_ROUNDS <= self.bcrypt_rounds <= MAX_BCRYPT_ROUNDS:
            raise ValueError(f"BCRYPT_ROUNDS must be between {MIN_BCRYPT_ROUNDS} and {MAX_BCRYPT_ROUNDS}.")
        if self.request_timeout_seconds <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive.")
        if self.env == "prod" and self.bcrypt_rounds < 10:
            logger.warning("BCRYPT_ROUNDS=%d is below the recommended minimum of 10 for production.", self.bcrypt_rounds)
        return self


def load_settings(config_path: str | None = None) -> Settings:
    """Build Settings from an explicit env file path.

    Path resolution order: the config_path argument (from the --config CLI
    flag), then the CONFIG_PATH env var, then ".env" in the working directory.
    An explicitly named file that does not exist is a startup error.
    """
    path = config_path or os.environ.get("CONFIG_PATH")
    if path is None:
        return Settings()
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Config file does not exist: {path}")
    return Settings(_env_file=path)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    Uses lru_cache so Settings is instantiated exactly once -- at first call.
    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return load_settings()
