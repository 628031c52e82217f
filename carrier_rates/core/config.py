"""
Application configuration

Settings are read from the environment (and an optional .env file) once at
process start by load_settings() and then passed explicitly into the service,
registry and carrier adapters. There is no module-level settings instance.

SECURITY: carrier credentials have no defaults (startup fails if not set).
"""
import logging
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from carrier_rates.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

# UPS API hosts
UPS_PRODUCTION_URL = "https://onlinetools.ups.com"
UPS_SANDBOX_URL = "https://wwwcie.ups.com"
UPS_OAUTH_TOKEN_PATH = "/security/v1/oauth/token"


class CarrierCredentials(BaseModel):
    """Resolved per-carrier credentials and endpoints."""
    model_config = ConfigDict(frozen=True)

    client_id: str
    client_secret: str = Field(repr=False)
    account_number: str
    base_url: str
    oauth_url: str


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # App
    ENVIRONMENT: Literal["development", "staging", "production"] = "development"
    LOG_LEVEL: Literal["debug", "info", "warn", "warning", "error"] = "info"

    # UPS - NO DEFAULT CREDENTIALS (will fail if not set)
    UPS_CLIENT_ID: str = Field(..., min_length=1)
    UPS_CLIENT_SECRET: str = Field(..., min_length=1, repr=False)
    UPS_ACCOUNT_NUMBER: str = Field(..., min_length=1)
    UPS_USE_SANDBOX: bool = False
    UPS_BASE_URL: Optional[str] = None  # Derived from UPS_USE_SANDBOX when unset
    UPS_OAUTH_URL: Optional[str] = None  # Derived from UPS_BASE_URL when unset

    # HTTP transport
    HTTP_TIMEOUT_MS: int = Field(30000, gt=0)
    HTTP_MAX_RETRIES: int = Field(3, ge=0)

    @field_validator("ENVIRONMENT", "LOG_LEVEL", mode="before")
    @classmethod
    def lowercase_tags(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("UPS_BASE_URL", "UPS_OAUTH_URL", mode="before")
    @classmethod
    def validate_url(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if not str(v).startswith(("http://", "https://")):
            raise ValueError("must be an http(s) URL")
        return str(v).rstrip("/")

    @model_validator(mode="after")
    def resolve_ups_urls(self):
        """Fill in UPS endpoints from the sandbox toggle."""
        if not self.UPS_BASE_URL:
            self.UPS_BASE_URL = UPS_SANDBOX_URL if self.UPS_USE_SANDBOX else UPS_PRODUCTION_URL
        if not self.UPS_OAUTH_URL:
            self.UPS_OAUTH_URL = f"{self.UPS_BASE_URL}{UPS_OAUTH_TOKEN_PATH}"
        return self

    @property
    def http_timeout_seconds(self) -> float:
        return self.HTTP_TIMEOUT_MS / 1000.0

    def carrier_credentials(self, carrier_name: str) -> CarrierCredentials:
        """
        Credentials for a carrier adapter.

        Raises:
            ConfigurationError if the carrier has no configuration section
        """
        if carrier_name.lower() == "ups":
            return CarrierCredentials(
                client_id=self.UPS_CLIENT_ID,
                client_secret=self.UPS_CLIENT_SECRET,
                account_number=self.UPS_ACCOUNT_NUMBER,
                base_url=self.UPS_BASE_URL,
                oauth_url=self.UPS_OAUTH_URL,
            )
        raise ConfigurationError(f"No credentials configured for carrier: {carrier_name}")


def load_settings(**overrides) -> Settings:
    """
    Build Settings from the environment, applying keyword overrides.

    Raises:
        ConfigurationError listing every missing or invalid field
    """
    try:
        settings = Settings(**overrides)
    except ValidationError as e:
        problems = "\n".join(
            f"  - {'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in e.errors()
        )
        raise ConfigurationError(
            f"Configuration validation failed:\n{problems}\n\n"
            "Check your environment or .env file."
        ) from e

    logger.info(
        f"Settings loaded: environment={settings.ENVIRONMENT}, "
        f"ups_base_url={settings.UPS_BASE_URL}, max_retries={settings.HTTP_MAX_RETRIES}"
    )
    return settings
