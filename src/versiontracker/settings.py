"""Runtime settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_prefix="VERSIONTRACKER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    output_dir: Path = Path("./versions")
    dataset_filename: str = "all-versions.json"
    summary_filename: str = "VERSIONS.md"
    api_dir: Path = Path("./docs/api/v1")
    minify_json: bool = True

    github_api_url: str = "https://api.github.com"
    github_token: SecretStr | None = None

    concurrency: int = Field(default=10, ge=1, le=200)
    rate_limit_per_second: float = Field(default=10.0, gt=0)
    request_timeout: float = Field(default=30.0, ge=1, le=120)
    probe_timeout: float = Field(default=5.0, gt=0, le=60)
    cache_ttl_seconds: float = Field(default=300.0, ge=0)

    page_size: int = Field(default=100, ge=1, le=100)
    max_consecutive_known: int = Field(default=20, ge=1, le=1000)
    page_delay: float = Field(default=0.05, ge=0.0, le=10.0)
    inter_software_delay: float = Field(default=0.2, ge=0.0, le=60.0)
    probe_batch_size: int = Field(default=10, ge=1, le=100)
    fetch_tag_dates: bool = True
    probe_sizes: bool = True

    @property
    def dataset_path(self) -> Path:
        return self.output_dir / self.dataset_filename

    @property
    def summary_path(self) -> Path:
        return self.output_dir / self.summary_filename
