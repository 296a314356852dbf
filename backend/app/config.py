"""
Kinship Configuration
=====================
All environment variables in one place. Pydantic Settings validates
types at startup so a missing or malformed value fails on boot, not on
the first journal entry.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Loaded from environment variables or a .env file."""

    # --- Supabase ---
    supabase_url: str = "http://localhost:54321"
    supabase_service_key: str = ""  # service_role key for backend operations

    # --- Mistral AI ---
    mistral_api_key: str = ""
    mistral_api_url: str = "https://api.mistral.ai"
    mistral_model: str = "mistral-small-latest"
    mistral_timeout_seconds: float = 30.0

    # Emotion classification: low temperature, small JSON object
    classifier_temperature: float = 0.3
    classifier_max_tokens: int = 200

    # Recommendations: a little more variety, three short sentences
    recommendation_temperature: float = 0.7
    recommendation_max_tokens: int = 300

    # --- Firebase Cloud Messaging ---
    # Either the service-account JSON itself or a path to the file.
    firebase_admin_json: str = ""
    enable_push_notifications: bool = True

    # --- Database webhooks ---
    # Shared secret sent by Supabase in the X-Webhook-Secret header.
    # Empty disables the check (local development only).
    webhook_secret: str = ""

    # --- App settings ---
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: list[str] = ["http://localhost:8081", "http://localhost:19006"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
