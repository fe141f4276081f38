from typing import List, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # ─── Provider Selection ─────────────────────────────
    AI_PROVIDER: Literal["gemini", "groq"] = "gemini"

    # A missing key leaves the provider unconfigured; requests then fail with 500.
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash-lite"
    GEMINI_BASE_URL: str = "https://generativelanguage.googleapis.com/v1beta"

    GROQ_API_KEY: Optional[str] = None
    DEFAULT_MODEL_GROQ: str = "llama-3.3-70b-versatile"

    # ─── Retry Policy ───────────────────────────────────
    # Total attempts per provider call, including the first one.
    MAX_RETRIES: int = Field(3, ge=1)
    # First backoff delay; doubles after every transient failure.
    INITIAL_BACKOFF_MS: int = Field(800, ge=0)

    REQUEST_TIMEOUT_SECONDS: float = Field(30.0, gt=0)

    # ─── Server ─────────────────────────────────────────
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGINS: List[str] = ["*"]
    # Larger bodies are rejected with 413 before reaching a route.
    MAX_BODY_BYTES: int = Field(10 * 1024 * 1024, gt=0)

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def provider_api_key(self) -> Optional[str]:
        """Credential of the selected provider, blank values treated as unset."""
        key = self.GEMINI_API_KEY if self.AI_PROVIDER == "gemini" else self.GROQ_API_KEY
        if key is None or not key.strip():
            return None
        return key.strip()

@lru_cache
def get_settings():
    return Settings()
