# src/settings.py
import os

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.generate.models import DEFAULT_GEMINI_MODEL, DEFAULT_OPENROUTER_MODEL
from src.generate.types import ProviderConfig, Provider


class Settings(BaseSettings):
    # core
    APP_NAME: str = Field(default="SaveTheBus Objection Service")
    ENV: str = Field(default=os.getenv("APP_ENV", "dev"))
    DEBUG: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # provider selection
    AI_PROVIDER: str = Field(default="openrouter")
    AI_STREAMING: bool = Field(default=False)
    AI_TEMPERATURE: float = Field(default=0.7)
    AI_MAX_TOKENS: int = Field(default=2048)
    AI_TOP_P: float | None = None

    # openrouter (through our own proxy)
    OPENROUTER_API_KEY: str | None = None
    OPENROUTER_MODEL: str = Field(default=DEFAULT_OPENROUTER_MODEL)
    OPENROUTER_SITE_URL: str = Field(default="https://savethebus.vercel.app")
    OPENROUTER_APP_NAME: str = Field(default="SaveTheBus")
    PROXY_BASE_URL: str = Field(default="http://localhost:8000/api/proxy")

    # gemini (direct)
    GEMINI_API_KEY: str | None = None
    GEMINI_MODEL: str = Field(default=DEFAULT_GEMINI_MODEL)

    # seconds
    REQUEST_TIMEOUT: float = Field(default=30.0)
    UPSTREAM_TIMEOUT: float = Field(default=30.0)

    model_config = SettingsConfigDict(
        env_file=".env.dev",
        extra="ignore",
    )

    @property
    def app_name(self) -> str:
        return self.APP_NAME

    def provider_config(self) -> ProviderConfig:
        """Freeze the provider-related settings into the config handed to the generator."""
        provider = Provider(self.AI_PROVIDER.strip().lower())
        if provider is Provider.FALLBACK:
            raise ValueError("AI_PROVIDER must be 'gemini' or 'openrouter'")
        if provider is Provider.GEMINI:
            model, api_key = self.GEMINI_MODEL, self.GEMINI_API_KEY
        else:
            model, api_key = self.OPENROUTER_MODEL, None
        return ProviderConfig(
            provider=provider,
            model=model,
            temperature=self.AI_TEMPERATURE,
            max_output_tokens=self.AI_MAX_TOKENS,
            top_p=self.AI_TOP_P,
            streaming=self.AI_STREAMING,
            timeout=self.REQUEST_TIMEOUT,
            proxy_base_url=self.PROXY_BASE_URL,
            api_key=api_key,
        )


settings = Settings()


async def get_settings() -> Settings:
    """FastAPI dependency; tests override it to flip credential state.

    Async so resolving it never takes a worker thread: /api/objection calls
    back into /api/proxy on this same server while holding one.
    """
    return settings
