from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode

DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://localhost:5173"]


class Settings(BaseSettings):
    """Runtime settings read from the environment (backend/.env is loaded in main)"""

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4"
    section_catalog_path: Optional[str] = None
    tick_interval_seconds: float = 1.0
    cors_origins: Annotated[List[str], NoDecode] = DEFAULT_CORS_ORIGINS
    log_level: str = "INFO"

    class Config:
        case_sensitive = False

    @field_validator("openai_api_key", "section_catalog_path")
    @classmethod
    def empty_as_unset(cls, value: Optional[str]) -> Optional[str]:
        return value or None

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, value):
        # accept comma-separated string, e.g. "http://a,http://b"
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
