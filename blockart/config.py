from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    port: int = Field(default=8000, alias="PORT")
    max_concurrent_requests: int = Field(default=2, alias="MAX_CONCURRENT_REQUESTS")
    max_image_size: int = Field(default=10 * 1024 * 1024, alias="MAX_IMAGE_SIZE")
    log_level: str = Field(default="info", alias="LOG_LEVEL")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")
    default_palette: str = Field(default="wplace", alias="DEFAULT_PALETTE")
    default_block_size: int = Field(default=10, alias="DEFAULT_BLOCK_SIZE")
    conversion_timeout_s: float = Field(default=30.0, alias="CONVERSION_TIMEOUT_S")

    model_config = {"env_file": ".env", "extra": "ignore"}


settings = Settings()
