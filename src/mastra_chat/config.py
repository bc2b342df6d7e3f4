"""Settings read from the environment and `.env`."""

from enum import Enum
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class AgentDefaultsConfig(BaseSettings):
    """Agent connection defaults used until the user saves a configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    base_url: str = Field(default="", alias="MASTRA_BASE_URL", description="Mastra agent server base URL")
    agent_id: str = Field(default="", alias="MASTRA_AGENT_ID", description="Identifier of the agent to talk to")
    api_key: str | None = Field(default=None, alias="MASTRA_API_KEY", description="Optional bearer credential")

    @property
    def is_configured(self) -> bool:
        """Check if both the endpoint and the agent are set."""
        return bool(self.base_url.strip() and self.agent_id.strip())

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Drop trailing slashes so paths can be appended."""
        return v.strip().rstrip("/") if v else v


class TransportConfig(BaseSettings):
    """HTTP transport configuration."""

    model_config = SettingsConfigDict(env_prefix="TRANSPORT_", env_file=".env", extra="ignore")

    request_timeout: float = Field(default=60.0, description="Read timeout for agent requests in seconds")
    connect_timeout: float = Field(default=10.0, description="Connection timeout in seconds")
    user_agent: str = Field(default="mastra-chat-client/0.1.0", description="User-Agent header value")


class ResilienceConfig(BaseSettings):
    """Resilience and error handling configuration."""

    model_config = SettingsConfigDict(env_prefix="RESILIENCE_", env_file=".env", extra="ignore")

    enable_retries: bool = Field(default=True, description="Enable retry logic globally")
    probe_max_attempts: int = Field(default=2, description="Maximum attempts for the connection probe")
    probe_base_delay: float = Field(default=0.5, description="Base delay between probe attempts")
    probe_max_delay: float = Field(default=5.0, description="Maximum delay between probe attempts")


class ApplicationConfig(BaseSettings):
    """Client-wide settings: environment, logging and where the agent config lives."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment
    environment: Environment = Field(default=Environment.DEVELOPMENT, description="Application environment")

    # Logging
    log_level: str = Field(default="WARNING", description="Logging level")
    log_file: Path | None = Field(default=None, description="Log file path")

    # Storage
    config_dir: Path = Field(default=Path(".mastra_chat"), description="Directory holding the saved agent config")

    @field_validator("environment", mode="before")
    @classmethod
    def parse_environment(cls, v: str) -> Environment:
        """Parse environment from string."""
        if isinstance(v, str):
            return Environment(v.lower())
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Upper-case the level name for the logging module."""
        return v.upper()


class Settings:
    """Centralized settings management."""

    def __init__(self):
        self._app: ApplicationConfig | None = None
        self._agent: AgentDefaultsConfig | None = None
        self._transport: TransportConfig | None = None
        self._resilience: ResilienceConfig | None = None

    @property
    def app(self) -> ApplicationConfig:
        """Get application configuration."""
        if self._app is None:
            self._app = ApplicationConfig()
        return self._app

    @property
    def agent(self) -> AgentDefaultsConfig:
        """Get agent connection defaults."""
        if self._agent is None:
            self._agent = AgentDefaultsConfig()
        return self._agent

    @property
    def transport(self) -> TransportConfig:
        """Get transport configuration."""
        if self._transport is None:
            self._transport = TransportConfig()
        return self._transport

    @property
    def resilience(self) -> ResilienceConfig:
        """Get resilience configuration."""
        if self._resilience is None:
            self._resilience = ResilienceConfig()
        return self._resilience

    def reload(self) -> None:
        """Reload all configurations."""
        self._app = None
        self._agent = None
        self._transport = None
        self._resilience = None


# Global settings instance
settings = Settings()
