"""
LogFluent Insight - Configuration
=================================

Centralized configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache
from enum import Enum


class StoreProvider(str, Enum):
    """Backends for log and chat records."""
    MEMORY = "memory"       # In-process dicts, for development/testing
    SUPABASE = "supabase"   # Managed Postgres via PostgREST + Storage


class LLMProvider(str, Enum):
    """Available text-generation providers."""
    MOCK = "mock"           # Deterministic offline responses
    GEMINI = "gemini"       # Google Gemini generateContent API


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """
    
    # Service identification
    service_name: str = Field(
        default="logfluent",
        description="Name of this service"
    )
    service_version: str = Field(
        default="0.1.0",
        description="Semantic version"
    )
    
    # Server configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    
    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    
    # Store
    store_provider: StoreProvider = Field(
        default=StoreProvider.MEMORY,
        description="Record store backend (memory, supabase)"
    )
    supabase_url: str = Field(
        default="",
        description="Supabase project URL"
    )
    supabase_service_role_key: str = Field(
        default="",
        description="Service-role key used for table and storage access"
    )
    supabase_storage_bucket: str = Field(
        default="log-files",
        description="Bucket receiving the raw uploaded files"
    )
    store_timeout_seconds: float = Field(
        default=10.0,
        description="Timeout for store requests"
    )
    
    # LLM configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.MOCK,
        description="LLM provider to use (mock, gemini)"
    )
    gemini_api_key: str = Field(
        default="",
        description="Google Generative Language API key"
    )
    gemini_model: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model used for summaries and chat"
    )
    gemini_api_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Generative Language API"
    )
    llm_timeout_seconds: float = Field(
        default=120.0,
        description="Transport timeout for LLM calls"
    )
    
    # Analysis settings
    summary_max_chars: int = Field(
        default=50000,
        description="Characters of log content sent to the LLM for summarization"
    )
    chat_history_limit: int = Field(
        default=10,
        description="Prior chat messages included as conversation context"
    )
    
    # Dashboard
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="URL the dashboard uses to reach this API"
    )
    
    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
