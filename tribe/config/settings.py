from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List


class Settings(BaseSettings):
    # Supabase
    supabase_url: str = ""
    supabase_key: str = ""
    supabase_service_role_key: Optional[str] = None  # Required for admin operations like deleting auth users
    media_bucket: str = "media"

    # Assistant (any OpenAI-compatible chat-completions endpoint)
    llm_api_url: str = "https://api.openai.com/v1/chat/completions"
    llm_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    llm_model: str = "gpt-3.5-turbo"
    llm_max_tokens: int = 500
    llm_temperature: float = 0.7
    llm_timeout_sec: float = 30.0
    assistant_history_limit: int = 20

    # Inbound leaf webhook (e-mail ingestion etc.)
    webhook_api_key: Optional[str] = None

    # Invitations
    invitation_ttl_days: int = 7

    # App
    app_name: str = "tribe-backend"
    debug: bool = False
    environment: str = "development"  # development | staging | production
    log_level: str = "INFO"
    cors_origins: str = "http://localhost:3000,http://localhost:5173,http://127.0.0.1:3000,http://127.0.0.1:5173"
    rate_limit: str = "100/minute"  # slowapi format, e.g. "100/minute"
    rate_limit_enabled: bool = True

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def resolved_llm_api_key(self) -> Optional[str]:
        return self.llm_api_key or self.openai_api_key

    def get_cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_prefix="",  # No prefix needed
        extra="ignore"
    )


settings = Settings()
