"""Configuration for TTS Proxy."""

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Service settings
    service_name: str = "tts-proxy"
    service_host: str = "0.0.0.0"
    http_port: int = 3001
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: list[str] = ["*"]
    
    # Upstream provider (OpenAI speech API)
    openai_api_url: str = "https://api.openai.com/v1"
    openai_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("TTS_PROXY_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    tts_model: str = "gpt-4o-mini-tts"
    # None keeps the upstream call unbounded
    upstream_timeout_seconds: Optional[float] = None
    
    # Request defaults
    default_voice: str = "alloy"
    default_format: str = "mp3"
    
    # Snapshots
    metrics_dir: str = "metrics"
    snapshot_batch_size: int = 10
    
    class Config:
        env_prefix = "TTS_PROXY_"
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
