"""
Configuration management for the backend.
"""
import os
from functools import lru_cache
from dotenv import load_dotenv

load_dotenv()


# Default endpoints/models per provider
PROVIDER_DEFAULTS = {
    "anthropic": {
        "model": "claude-3-5-haiku-20241022",
        "base_url": "",
        "key_env": "ANTHROPIC_API_KEY",
    },
    "glm": {
        "model": "glm-4",
        "base_url": "https://open.bigmodel.cn/api/paas/v4/",
        "key_env": "GLM_API_KEY",
    },
    "openai": {
        "model": "gpt-4o-mini",
        "base_url": "",
        "key_env": "OPENAI_API_KEY",
    },
}


def _provider() -> str:
    provider = os.getenv("LLM_PROVIDER", "anthropic").strip().lower()
    return provider if provider in PROVIDER_DEFAULTS else "anthropic"


class Settings:
    """Application settings loaded from environment variables."""

    # LLM gateway
    LLM_PROVIDER: str = _provider()
    LLM_API_KEY: str = os.getenv("LLM_API_KEY") or os.getenv(PROVIDER_DEFAULTS[_provider()]["key_env"], "")
    LLM_MODEL: str = os.getenv("LLM_MODEL", PROVIDER_DEFAULTS[_provider()]["model"])
    LLM_BASE_URL: str = os.getenv("LLM_BASE_URL", PROVIDER_DEFAULTS[_provider()]["base_url"])
    LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.7"))
    LLM_MAX_TOKENS: int = int(os.getenv("LLM_MAX_TOKENS", "2000"))
    LLM_TIMEOUT: float = float(os.getenv("LLM_TIMEOUT", "30"))

    # Session storage
    SESSION_BACKEND: str = os.getenv("SESSION_BACKEND", "memory")
    SESSION_DIR: str = os.getenv("SESSION_DIR", ".sessions")
    SESSION_MAX_AGE_HOURS: float = float(os.getenv("SESSION_MAX_AGE_HOURS", "24"))

    # Streaming approximation for handlers that can't stream natively
    STREAM_CHUNK_DELAY: float = float(os.getenv("STREAM_CHUNK_DELAY", "0.05"))

    # API settings
    API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
    API_PORT: int = int(os.getenv("API_PORT", "8000"))

    # CORS origins for frontend
    CORS_ORIGINS: list[str] = [
        origin.strip()
        for origin in os.getenv("CORS_ORIGINS", "*").split(",")
        if origin.strip()
    ]

    def validate(self) -> list[str]:
        """Validate required settings. Returns list of missing keys."""
        missing = []
        if not self.LLM_API_KEY:
            missing.append("LLM_API_KEY")
        if self.SESSION_BACKEND not in ("memory", "file"):
            missing.append("SESSION_BACKEND")
        return missing

    def __repr__(self) -> str:
        key = "***" if self.LLM_API_KEY else "(unset)"
        return (
            f"Settings(provider={self.LLM_PROVIDER!r}, model={self.LLM_MODEL!r}, "
            f"api_key={key}, session_backend={self.SESSION_BACKEND!r})"
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
