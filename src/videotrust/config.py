from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Configuration sourced from environment variables."""

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-1.5-pro"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    inference_timeout: float = 60.0
    analysis_timeout_ms: int = 30000
    retry_attempts: int = 2
    retry_backoff_seconds: float = 1.0
    default_video_duration: float = 60.0
    default_mime_type: str = "video/mp4"
    anomaly_merge_tolerance: float = 2.0
    indicator_jitter: float = 0.0
    jitter_seed: int = 0

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "",
        "case_sensitive": False,
    }


@lru_cache(1)
def get_settings() -> Settings:
    return Settings()
