# config/settings.py

from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class OpenAIConfig(BaseModel):
    """Config for the OpenAI completion provider."""

    api_key: str = Field("", repr=False)
    chat_model: str = "gpt-4o-mini"
    request_timeout_seconds: float = 15.0
    temperature: float = 0.1
    system_prompt: str = ""  # empty: use PROMPTS["system"]


class CredentialsConfig(BaseModel):
    """Config for the PeopleStrong token and API-key exchange."""

    token_url: str = "https://uat-auth.peoplestrong.com/auth/realms/3/protocol/openid-connect/token"
    api_key_url: str = (
        "https://s2demo-admin.uat.peoplestrong.com"
        "/api/integration/client-config/kong/fetchPlaygroundInitObject"
    )
    session_token: str = Field("", repr=False)
    client_id: str = ""
    client_secret: str = Field("", repr=False)
    organization_id: int = 3
    timeout_seconds: float = 8.0


class IntegrationsConfig(BaseModel):
    """Config for the HR outbound integration endpoints."""

    base_url: str = "https://uat-api.peoplestrong.com"
    timeout_seconds: float = 8.0
    page_size: int = 5


class WeatherConfig(BaseModel):
    base_url: str = "https://wttr.in"
    timeout_seconds: float = 8.0


class StreamConfig(BaseModel):
    """Config for the per-session event stream."""

    heartbeat_seconds: float = 15.0
    stream_tokens: bool = False


class OrchestratorConfig(BaseModel):
    """Config for the conversation router."""

    max_history_turns: int = Field(8, ge=1)
    provider_name: Literal["OpenAIProvider", "NaiveProvider"] = "OpenAIProvider"


class AuthConfig(BaseModel):
    """Bearer token verification for the HTTP surface."""

    enabled: bool = False
    jwt_secret: str = Field("", repr=False)
    audience: Optional[str] = "claude-mcp"
    issuer: Optional[str] = "https://uat-auth.peoplestrong.com/auth/realms/3"


class LoggingConfig(BaseModel):
    """Basic logging config."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_logging: bool = True


class Settings(BaseSettings):
    """Top-level app settings loaded from environment / .env."""

    env: Literal["dev", "staging", "prod"] = "dev"

    openai: OpenAIConfig = OpenAIConfig()
    credentials: CredentialsConfig = CredentialsConfig()
    integrations: IntegrationsConfig = IntegrationsConfig()
    weather: WeatherConfig = WeatherConfig()
    stream: StreamConfig = StreamConfig()
    orchestrator: OrchestratorConfig = OrchestratorConfig()
    auth: AuthConfig = AuthConfig()
    logging: LoggingConfig = LoggingConfig()

    # pydantic-settings v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",              # all vars start with APP_
        env_nested_delimiter="__",      # APP_CREDENTIALS__CLIENT_ID, etc.
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
