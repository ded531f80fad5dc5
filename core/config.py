"""
core/config.py -- Courtside settings, read once from the environment.

Every tunable lives on Settings: signing secret, token lifetime and issuer,
bcrypt cost, database URL, CORS origins, the login rate limit and the
optional first-run admin. Values come from environment variables or a .env
file (SECRET_KEY, TOKEN_TTL_HOURS, BCRYPT_ROUNDS, ...).

Only api/main.py, api/limiter.py and the CLI call get_settings(). The auth
components receive plain values through their constructors and never import
this module.

Secret policy:
  [M6] A SECRET_KEY under 32 characters is refused in every mode.
  [M7] Without DEBUG=true a missing SECRET_KEY stops startup. With
       DEBUG=true a random key is generated and every restart signs members out.

Layer rule: core/ may not import from api/ or auth/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("courtside.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'courtside.db'}"

# auth/tokens.py keeps its own copy of this floor; auth/ never imports core/.
MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Courtside configuration. SECRET_KEY must pass validate_secret_key; the rest have defaults."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Runtime
    # ------------------------------------------------------------------

    debug: bool = False
    log_level: str = "INFO"
    # "" means unset; validate_secret_key replaces or rejects it.
    secret_key: str = Field(default="", repr=False)
    database_url: str = _DEFAULT_DB_URL
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Auth
    # ------------------------------------------------------------------

    token_ttl_hours: int = Field(default=24, ge=1)
    token_issuer: str = "courtside-api"
    # bcrypt cost factor: 2**rounds iterations. 12 is ~250ms on current hardware.
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # First-run admin bootstrap (enabled when email and password are set)
    # ------------------------------------------------------------------

    admin_email: str = ""
    admin_name: str = "Administrator"
    admin_password: str = Field(default="", repr=False)

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Generate a key in debug mode, refuse a missing or short one otherwise [M6][M7]."""
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Issued tokens will not survive a restart.")
            else:
                raise ValueError("SECRET_KEY is required unless DEBUG=true.")
        if len(self.secret_key) < MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters.")
        return self

    @property
    def admin_bootstrap_enabled(self) -> bool:
        return bool(self.admin_email and self.admin_password)


@lru_cache
def get_settings() -> Settings:
    """Cached Settings instance. Tests call get_settings.cache_clear() after changing the environment."""
    return Settings()
