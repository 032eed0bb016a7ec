"""Configuration management using Pydantic Settings.

Environment variables (or a local .env file) provide defaults; a
SessionConfig is the immutable, validated value a BrowserSession is launched
with. Never hardcode proxy credentials.
"""

from datetime import timedelta
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Application environment types."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """Defaults loaded from environment variables.

    Every field has a default, so ``Settings()`` always succeeds; values are
    only turned into a SessionConfig by ``build_config``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Settings
    ENVIRONMENT: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment (development/staging/production)",
    )
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")

    # Browser Settings
    BROWSER_HEADLESS: bool = Field(default=True, description="Run the browser without a window")
    BROWSER_STEALTH: bool = Field(default=True, description="Inject anti-detection patches")
    VIEWPORT_WIDTH: int = Field(default=1920, description="Viewport width in pixels")
    VIEWPORT_HEIGHT: int = Field(default=1080, description="Viewport height in pixels")
    BROWSER_TIMEOUT: float = Field(default=30.0, description="Default wait budget in seconds")
    CHROME_PATH: str | None = Field(default=None, description="Custom browser binary path")

    # Proxy Settings
    PROXY_SERVER: str | None = Field(
        default=None,
        description="Proxy server URL (http://host:port or socks5://host:port)",
    )
    PROXY_USERNAME: str | None = Field(default=None, description="Proxy username")
    PROXY_PASSWORD: str | None = Field(default=None, description="Proxy password")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings instance
    """
    return Settings()


class Viewport(BaseModel):
    """Browser viewport dimensions."""

    model_config = ConfigDict(frozen=True)

    width: int = Field(default=1920, gt=0, description="Viewport width in pixels")
    height: int = Field(default=1080, gt=0, description="Viewport height in pixels")


class ProxyConfig(BaseModel):
    """Proxy server with optional basic-auth credentials."""

    model_config = ConfigDict(frozen=True)

    server: str = Field(..., min_length=1, description="Proxy URL, e.g. http://host:port")
    username: str | None = Field(default=None, description="Proxy username")
    password: str | None = Field(default=None, description="Proxy password")

    @model_validator(mode="after")
    def check_credentials(self) -> "ProxyConfig":
        """Username and password must be given together."""
        if (self.username is None) != (self.password is None):
            raise ValueError("proxy username and password must be provided together")
        return self

    @property
    def has_credentials(self) -> bool:
        return self.username is not None

    def to_playwright(self) -> dict[str, str]:
        """Proxy settings in the shape Playwright's launch() expects."""
        proxy = {"server": self.server}
        if self.username is not None and self.password is not None:
            proxy["username"] = self.username
            proxy["password"] = self.password
        return proxy


class SessionConfig(BaseModel):
    """Immutable browser session configuration.

    Validation happens at construction; an instance that exists is always
    launchable.
    """

    model_config = ConfigDict(frozen=True)

    headless: bool = Field(default=True, description="Run without a window")
    stealth: bool = Field(default=True, description="Apply anti-detection patches")
    viewport: Viewport = Field(default_factory=Viewport, description="Viewport size")
    timeout: timedelta = Field(
        default=timedelta(seconds=30),
        description="Default budget for wait-capable operations",
    )
    proxy: ProxyConfig | None = Field(default=None, description="Optional proxy")
    binary_path: Path | None = Field(default=None, description="Custom browser binary")

    @field_validator("timeout")
    @classmethod
    def check_timeout(cls, v: timedelta) -> timedelta:
        if v.total_seconds() <= 0:
            raise ValueError("timeout must be greater than zero")
        return v

    @property
    def timeout_ms(self) -> float:
        """Timeout in milliseconds, the unit Playwright uses."""
        return self.timeout.total_seconds() * 1000


def build_config(settings: Settings | None = None, **overrides: Any) -> SessionConfig:
    """Build a validated SessionConfig from settings defaults and overrides.

    Args:
        settings: Settings to draw defaults from (uses get_settings() if None)
        **overrides: Explicit SessionConfig fields; ``timeout`` may be given
            as seconds or a timedelta, ``viewport`` as a (width, height) tuple

    Returns:
        SessionConfig: Validated, frozen configuration

    Raises:
        pydantic.ValidationError: If any value is invalid
    """
    settings = settings or get_settings()

    proxy = None
    if settings.PROXY_SERVER:
        proxy = ProxyConfig(
            server=settings.PROXY_SERVER,
            username=settings.PROXY_USERNAME,
            password=settings.PROXY_PASSWORD,
        )

    values: dict[str, Any] = {
        "headless": settings.BROWSER_HEADLESS,
        "stealth": settings.BROWSER_STEALTH,
        "viewport": Viewport(width=settings.VIEWPORT_WIDTH, height=settings.VIEWPORT_HEIGHT),
        "timeout": timedelta(seconds=settings.BROWSER_TIMEOUT),
        "proxy": proxy,
        "binary_path": settings.CHROME_PATH,
    }
    values.update(overrides)

    if isinstance(values["timeout"], (int, float)):
        values["timeout"] = timedelta(seconds=values["timeout"])
    if isinstance(values["viewport"], tuple):
        width, height = values["viewport"]
        values["viewport"] = Viewport(width=width, height=height)
    if isinstance(values["proxy"], str):
        values["proxy"] = ProxyConfig(server=values["proxy"])

    return SessionConfig(**values)
