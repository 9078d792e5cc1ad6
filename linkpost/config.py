from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # App
    app_name: str = "LinkPost Composer API"
    debug: bool = False
    environment: Literal["development", "staging", "production"] = "development"
    log_level: str = "INFO"

    # API
    api_v1_prefix: str = "/api/v1"

    # Frontend
    cors_origins: List[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]
    frontend_url: str = "http://localhost:5173"

    # Session cookie
    session_secret: str = ""
    session_max_age_seconds: int = 86400
    oauth_state_max_age_seconds: int = 600

    # LinkedIn OAuth
    linkedin_client_id: str = ""
    linkedin_client_secret: str = ""
    linkedin_redirect_uri: Optional[str] = None
    linkedin_api_version: str = "202501"
    linkedin_timeout_seconds: float = 30.0

    # Post storage
    post_storage: Literal["memory", "file", "redis"] = "file"
    post_storage_dir: str = ".linkpost"
    post_storage_key: str = "linkedinPosts"

    # Redis
    redis_url: str = "redis://localhost:6379/0"

    # LLM providers
    default_llm_provider: Literal["gemini", "claude", "openai"] = "gemini"
    gemini_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("GEMINI_API_KEY", "GOOGLE_AI_API_KEY"),
    )
    anthropic_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("ANTHROPIC_API_KEY", "CLAUDE_API_KEY"),
    )
    openai_api_key: str = ""
    openai_base_url: Optional[str] = None
    llm_timeout_seconds: float = 60.0
    llm_max_tokens: int = 1024
    llm_temperature: float = 0.7


@lru_cache
def get_settings() -> Settings:
    return Settings()
