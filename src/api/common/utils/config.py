import os
from functools import lru_cache
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_CORS_ORIGINS = "http://localhost:5173"


def split_origins(value: str) -> List[str]:
    """Split a comma separated origin list, dropping blanks"""
    return [origin.strip() for origin in value.split(",") if origin.strip()]


class AppConfig(BaseModel):
    """Server settings read from the environment"""
    cors_origins: List[str] = Field(
        default_factory=lambda: split_origins(os.getenv("CORS_ORIGINS", DEFAULT_CORS_ORIGINS)))
    port: int = Field(default_factory=lambda: int(os.getenv("PORT", "8080")))
    max_page_size: int = Field(
        default_factory=lambda: int(os.getenv("MAX_PAGE_SIZE", "200")), gt=0,
        validate_default=True)
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())


@lru_cache
def get_config() -> AppConfig:
    return AppConfig()
