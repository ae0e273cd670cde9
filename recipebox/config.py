"""
RecipeBox — Settings
====================

What:  Every tunable of the server, read from the environment or `.env`
       by pydantic-settings into the module-level `settings` object.
       Names map one-to-one: DATABASE_URL → settings.database_url.
Who:   Services, middleware and the app factory import `settings`.
"""

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

# Image quality presets accepted by IMAGE_QUALITY / THUMBNAIL_QUALITY
IMAGE_QUALITY_LEVELS = ("original", "high", "medium", "low")
SUPPORTED_DRIVERS = ("postgres", "sqlite")
DEFAULT_SECURE_KEY = "ChangeMe"


class Settings(BaseSettings):
    """Defaults suit a single-user dev box; see validate_required_for_production."""

    # ── Database ──────────────────────────────────────────────────────────
    # Format: sqlite+aiosqlite:///path/to.db or postgresql+asyncpg://user:pw@host/db
    database_url: str = Field(
        default="sqlite+aiosqlite:///./data/recipes.db",
        description="Async SQLAlchemy connection URL",
    )

    # Blank means "infer from DATABASE_URL"
    database_driver: str = Field(default="", description="postgres or sqlite")

    # Pool settings only apply to server databases (Postgres)
    db_pool_size: int = Field(default=20, ge=5, le=100)
    db_max_overflow: int = Field(default=10, ge=0, le=50)
    db_pool_pre_ping: bool = Field(default=True)

    # In docker, on first bring up, the DB takes a little while to accept connections
    db_connect_attempts: int = Field(default=20, ge=1, le=100)
    db_connect_max_wait: int = Field(default=10, ge=1, le=120)

    @field_validator("database_driver")
    @classmethod
    def validate_database_driver(cls, v: str) -> str:
        lowered = v.strip().lower()
        if lowered and lowered not in SUPPORTED_DRIVERS:
            raise ValueError(
                f"Invalid database_driver '{v}'. Must be one of: {', '.join(SUPPORTED_DRIVERS)}"
            )
        return lowered

    @property
    def resolved_database_driver(self) -> str:
        """Explicit DATABASE_DRIVER wins; otherwise sniff the URL scheme."""
        if self.database_driver:
            return self.database_driver
        return "postgres" if self.database_url.startswith("postgres") else "sqlite"

    # ── File Storage ──────────────────────────────────────────────────────
    # Root directory for uploads and backups
    storage_root: str = Field(default="./data/files")

    # Default: 10MB. Valid range: 1MB to 50MB
    max_file_size: int = Field(default=10_485_760, ge=1_048_576, le=52_428_800)

    # ── Image Pipeline ────────────────────────────────────────────────────
    image_quality: str = Field(default="high")
    image_size: int = Field(default=2000, ge=100, le=10000)
    thumbnail_quality: str = Field(default="medium")
    thumbnail_size: int = Field(default=500, ge=50, le=2000)

    @field_validator("image_quality", "thumbnail_quality")
    @classmethod
    def validate_quality(cls, v: str) -> str:
        lowered = v.strip().lower()
        if lowered not in IMAGE_QUALITY_LEVELS:
            raise ValueError(
                f"Invalid image quality '{v}'. Must be one of: {', '.join(IMAGE_QUALITY_LEVELS)}"
            )
        return lowered

    # ── Authentication ────────────────────────────────────────────────────
    # Comma-separated. The first key signs new tokens; all keys verify.
    secure_keys: str = Field(default=DEFAULT_SECURE_KEY)
    token_lifetime_days: int = Field(default=14, ge=1, le=365)

    # bcrypt cost factor; each +1 doubles hashing time
    password_hash_rounds: int = Field(default=12, ge=4, le=31)

    @property
    def secure_keys_list(self) -> List[str]:
        return [key.strip() for key in self.secure_keys.split(",") if key.strip()]

    # Created on first startup when the user table is empty
    initial_admin_username: str = Field(default="admin@example.com")
    initial_admin_password: str = Field(default="password")

    # ── Application ───────────────────────────────────────────────────────
    app_title: str = Field(default="RecipeBox")

    # Directory holding a pre-built front end; served at / when present
    static_root: Optional[str] = Field(default=None)

    # ── CORS ──────────────────────────────────────────────────────────────
    cors_origins: str = Field(default="http://localhost:3000")

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=5000, ge=1024, le=65535)

    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Rate Limiting ─────────────────────────────────────────────────────
    # Per-IP sliding window
    rate_limit_requests: int = Field(default=1000, ge=10, le=100000)
    rate_limit_window: int = Field(default=3600, ge=60, le=86400)  # seconds

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }

    def validate_required_for_production(self) -> None:
        """Raise ValueError naming each security default still in place."""
        errors = []
        keys = self.secure_keys_list
        if not keys:
            errors.append("SECURE_KEYS must contain at least one key.")
        elif DEFAULT_SECURE_KEY in keys:
            errors.append(
                f"SECURE_KEYS contains the default value '{DEFAULT_SECURE_KEY}'. "
                "Tokens can be forged until it is replaced."
            )
        if self.initial_admin_password == "password":
            errors.append(
                "INITIAL_ADMIN_PASSWORD is the default. Change it before exposing the server."
            )
        if errors:
            raise ValueError(
                "Insecure settings:\n" + "\n".join(f"  - {e}" for e in errors)
            )


settings = Settings()
