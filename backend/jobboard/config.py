from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Database
    database_url: str = "sqlite+aiosqlite:///./jobboard.db"
    
    # Extraction model (Gemini)
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("gemini_api_key", "api_key"),
    )
    gemini_model: str = "gemini-2.5-flash"
    
    # Ingestion pipeline
    confidence_threshold: float = 0.7
    default_location: str = "Uganda"  # Deployment region used when a post names no location
    ingest_queue_size: int = 100
    ingest_workers: int = 2
    
    # WhatsApp webhook
    whatsapp_verify_token: Optional[str] = None
    
    # App
    allowed_origins: Optional[str] = None  # Comma-separated
    log_level: str = "INFO"
    debug: bool = False


settings = Settings()
