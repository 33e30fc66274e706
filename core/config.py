"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for Overseer happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() and
pass the Settings object to whatever needs it.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file. Field names map to env var names
      (e.g. secret_token -> SECRET_TOKEN).

  Token settings are read once and then only read: TokenService receives the
  Settings instance at construction and never touches the environment.

Signing config is validated lazily:
  SECRET_TOKEN and API_JWT_TOKEN_LIFESPAN_MINUTES are kept as raw strings so
  a missing or malformed value surfaces as ConfigurationError the first time
  a token is issued or verified, not as an import-time crash of every module
  that happens to touch settings.

Layer rule: core/ is the kernel. This module may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("overseer.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'overseer.db'}"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    database_url: str = _DEFAULT_DB_URL

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    # Empty string is the sentinel for "not configured".
    secret_token: str = ""
    # Raw minutes value, parsed by TokenService on first use.
    api_jwt_token_lifespan_minutes: str = ""

    # ------------------------------------------------------------------
    # Password policy
    # ------------------------------------------------------------------

    password_min_length: int = 8
    password_require_digit: bool = True

    # ------------------------------------------------------------------
    # API
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"
    bootstrap_admin: bool = True

    @model_validator(mode="after")
    def generate_dev_secret(self) -> "Settings":
        """Dev mode (DEBUG=true) with no SECRET_TOKEN gets a random key.

        Tokens will not survive a restart -- acceptable for local dev. Outside
        debug mode a missing key is left empty and TokenService refuses to
        sign or verify with it.
        """
        if not self.secret_token and self.debug:
            self.secret_token = secrets.token_hex(32)
            logger.warning("Using auto-generated SECRET_TOKEN. Tokens will not persist across restarts.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables, or construct Settings(...)
    directly and hand it to the service under test.
    """
    return Settings()
