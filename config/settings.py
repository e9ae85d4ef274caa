"""Configuration settings loaded from .env file."""

from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings

DEFAULT_IMAGE_TYPES = ["image/jpeg", "image/jpg", "image/png", "image/webp"]


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    Authentication lives with the external identity provider; the core only
    ever sees the opaque user id it hands out, so nothing here configures it.
    """

    # Database
    sqlite_db_path: Path = Path("./data/openquill.db")

    # Object storage (book covers, profile pictures)
    asset_root: Path = Path("./data/assets")
    asset_base_url: str = "/assets/"

    # Uploads
    max_image_bytes: int = 5 * 1024 * 1024
    allowed_image_types: list[str] = DEFAULT_IMAGE_TYPES

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }

    @field_validator("max_image_bytes")
    @classmethod
    def validate_max_image_bytes(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_image_bytes must be >= 1")
        return v

    @field_validator("allowed_image_types")
    @classmethod
    def validate_image_types(cls, v: list[str]) -> list[str]:
        types = [t.strip().lower() for t in v if t.strip()]
        if not types:
            raise ValueError("allowed_image_types must list at least one type")
        bad = [t for t in types if not t.startswith("image/")]
        if bad:
            raise ValueError(f"allowed_image_types must be image MIME types, got {bad}")
        return types

    @field_validator("asset_base_url")
    @classmethod
    def normalize_base_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("asset_base_url must not be empty")
        return v if v.endswith("/") else v + "/"

    @field_validator("sqlite_db_path", "asset_root", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
