"""Configuration management for WellTrack."""

from pydantic_settings import BaseSettings
from typing import Literal
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase
    supabase_url: str
    supabase_key: str

    # AI Provider
    ai_provider: Literal["gemini", "groq", "ollama", "disabled"] = "gemini"

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    # Groq
    groq_api_key: str = ""
    groq_model: str = "llama-3.1-8b-instant"

    # Ollama
    ollama_host: str = "http://localhost:11434"
    ollama_model: str = "llama3.2"

    # Email delivery
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_sender: str = "WellTrack <reports@welltrack.app>"

    # Public URL used in share links and emails
    app_base_url: str = "http://localhost:3000"

    # Scheduled reports
    cron_api_key: str = ""
    enable_scheduled_reports: bool = False
    report_cadence: Literal["weekly", "monthly"] = "monthly"
    report_time: str = "09:00"

    # Timezone
    timezone: str = "America/New_York"

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
