"""Configuration management.

Uses pydantic-settings for type-safe configuration from environment variables.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_config_dir() -> Path:
    """Find the config directory by walking up from the package location.

    Falls back to relative Path("config") if not found.
    """
    # config.py -> core/ -> tabload/ -> src/ -> root/
    package_dir = Path(__file__).resolve().parent.parent.parent.parent
    candidate = package_dir / "config"
    if candidate.is_dir():
        return candidate

    return Path("config")


class Settings(BaseSettings):
    """Application settings.

    All settings can be overridden via environment variables.
    Prefix: TABLOAD_
    """

    model_config = SettingsConfigDict(
        env_prefix="TABLOAD_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Metadata store (SQLAlchemy)
    database_url: str = Field(
        default="sqlite:///./tabload.db",
        description="SQLAlchemy database URL for dataset/file metadata",
    )

    # Configuration paths
    config_path: Path = Field(
        default_factory=_find_config_dir,
        description="Path to configuration files (storage targets)",
    )
    storage_targets_file: str = Field(
        default="storage_targets.yaml",
        description="YAML file under config_path listing the storage targets",
    )

    # Uploads
    upload_dir: Path = Field(
        default=Path("./uploads"),
        description="Directory accepted uploads are copied into",
    )

    # Ingestion
    worker_count: int = Field(
        default=4,
        ge=1,
        description="Number of background ingestion workers",
    )
    dataset_locking: bool = Field(
        default=True,
        description="Hold a per-dataset lock while materializing and loading a table",
    )

    # CSV
    csv_delimiter: str = Field(default=",", min_length=1, max_length=1)
    csv_encoding: str = Field(default="utf-8")

    # Logging
    log_level: str = Field(default="WARNING")
    log_format: str = Field(default="console")  # 'json' or 'console'

    @property
    def storage_targets_path(self) -> Path:
        return self.config_path / self.storage_targets_file


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def load_storage_targets(path: Path | None = None) -> list[dict[str, Any]]:
    """Load storage target definitions from YAML.

    Args:
        path: Optional path to the YAML file. If None, uses the path from settings.

    Returns:
        List of raw target definitions (``id``, ``path``), empty if the file is missing.
    """
    if path is None:
        path = get_settings().storage_targets_path

    if not path.exists():
        return []

    with open(path) as f:
        config = yaml.safe_load(f) or {}

    targets = config.get("targets", [])
    base_dir = path.parent
    resolved: list[dict[str, Any]] = []
    for target in targets:
        if "id" not in target or "path" not in target:
            continue
        target_path = Path(target["path"])
        if not target_path.is_absolute():
            target_path = base_dir / target_path
        resolved.append({**target, "id": str(target["id"]), "path": str(target_path)})
    return resolved
