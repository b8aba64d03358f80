from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
    )

    env: str = "dev"

    # Storage
    storage_backend: Literal["local", "s3"] = "local"
    storage_dir: str = Field("./storage")
    aws_profile: Optional[str] = Field(None)
    aws_access_key_id: Optional[str] = Field(None)
    aws_secret_access_key: Optional[str] = Field(None)
    aws_region: Optional[str] = Field(None)
    aws_endpoint_url: Optional[str] = Field(None)
    aws_bucket_name: Optional[str] = Field(None)
    aws_presign_urls: bool = False
    max_file_size_mb: Optional[int] = Field(100)

    # Browser
    headless: bool = True
    navigation_timeout_ms: int = 90_000
    selector_timeout_ms: int = 30_000
    page_timeout_secs: float = Field(300, gt=0)
    max_request_retries: int = Field(3, ge=0)
    gifsicle_path: str = "gifsicle"

    api_server_host: str = "0.0.0.0"
    api_server_port: int = 8000

    @property
    def key_value_store(self):
        from scroll_gif_recorder.storage import LocalKeyValueStore, S3KeyValueStore

        if self.storage_backend == "s3":
            return S3KeyValueStore(self)
        return LocalKeyValueStore(self.storage_dir)

    @property
    def dataset(self):
        from scroll_gif_recorder.storage import LocalDataset

        return LocalDataset(self.storage_dir)


@lru_cache()
def get_config() -> Config:
    """Get cached config instance."""

    return Config()
