"""
Application settings and configuration management.

Uses pydantic-settings for environment variable loading.
"""

from functools import lru_cache

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_HALLUCINATION_PHRASES = (
    "thank you",
    "thank you.",
    "thanks for watching",
    "thank you for watching",
    "thank you so much for watching",
    "please subscribe",
    "subtitles by the amara.org community",
    "you",
    "bye",
    "bye.",
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "HireLoop"
    app_version: str = "0.1.0"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 8000

    # Text generation providers (tried in `provider_order`)
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"

    openrouter_api_key: str = ""
    openrouter_model: str = "meta-llama/llama-3-70b-instruct"
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    groq_base_url: str = "https://api.groq.com/openai/v1"

    provider_order_str: str = Field(
        default="gemini,openrouter,openai,groq",
        validation_alias="provider_order",
    )
    provider_timeout_seconds: float = 20.0
    provider_temperature: float = 0.7

    # Speech synthesis (single provider: "openai" or "edge-tts")
    tts_provider: str = "openai"
    tts_model: str = "tts-1"
    tts_voice: str = "alloy"
    tts_timeout_seconds: float = 30.0

    # Batch speech recognition (Whisper API)
    whisper_model: str = "whisper-1"
    whisper_api_url: str = "https://api.openai.com/v1/audio/transcriptions"
    whisper_timeout_seconds: float = 30.0

    # Interview settings
    interview_max_questions: int = 10  # Hard cap on interviewer questions
    escalation_threshold: int = 70  # Scores strictly above escalate depth
    max_probes_per_node: int = 1
    answer_score_floor: int = 25  # Provider scores are clamped up to this
    fallback_answer_score: int = 50
    fallback_interview_score: int = 50
    min_answer_chars: int = 5
    skill_map_size: int = 3
    session_idle_timeout_seconds: int = 1800
    session_sweep_interval_seconds: int = 60

    # Transcript fusion
    fusion_min_chars: int = 5
    hallucination_phrases: list[str] = Field(
        default_factory=lambda: list(DEFAULT_HALLUCINATION_PHRASES)
    )
    capture_flush_grace_seconds: float = 0.75

    # Scoring and coin ledger
    elite_threshold: int = 60
    elite_reward_coins: int = Field(default=100, ge=1)
    high_score_threshold: int = 80
    high_score_reward_coins: int = Field(default=20, ge=1)
    default_coin_balance: int = 50
    # Costs of 0 make a step free
    assessment_unlock_cost: int = Field(default=10, ge=0)
    answer_validation_cost: int = Field(default=2, ge=0)
    interview_analysis_cost: int = Field(default=5, ge=0)
    profile_completion_bonus: int = Field(default=50, ge=1)

    # Storage (in-memory when no MongoDB URI is configured)
    mongodb_uri: str = ""
    mongodb_database: str = "hireloop"

    # Langfuse tracing
    langfuse_enabled: bool = False
    langfuse_public_key: str = ""
    langfuse_secret_key: str = ""
    langfuse_base_url: str = "https://cloud.langfuse.com"

    # CORS - stored as comma-separated string in env
    # Uses validation_alias to read from CORS_ORIGINS env var
    cors_origins_str: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        validation_alias="cors_origins"
    )

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @computed_field
    @property
    def provider_order(self) -> list[str]:
        """Parse provider priority from comma-separated string."""
        return [name.strip().lower() for name in self.provider_order_str.split(",") if name.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
