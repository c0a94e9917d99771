"""
Application-specific settings.
"""
from typing import List, Optional, Union

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://localhost:3000",
]


class AppSettings(BaseSettings):
    """
    Defines application-wide settings like project name, environment and the
    origin allow-list used by CSRF validation and CORS.

    Security Note:
        - ALLOWED_ORIGINS must be set explicitly in production. The loopback
          defaults only exist for local development, and a production process
          with no configured origins refuses to start rather than silently
          accepting them (OWASP A05:2021 - Security Misconfiguration).
    """
    PROJECT_NAME: str = "portcullis"
    VERSION: str = "0.1.0"
    APP_ENV: str = Field(
        default="development",
        pattern="^(development|test|staging|production)$",
    )

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    ALLOWED_ORIGINS: Optional[Union[str, List[str]]] = None

    @field_validator("ALLOWED_ORIGINS", mode="before")
    @classmethod
    def assemble_allowed_origins(cls, v: Optional[Union[str, List[str]]]) -> Optional[List[str]]:
        """
        Splits a comma-separated string of origins into a list.

        Args:
            v: Input value as a string or list of origins.

        Returns:
            List of stripped, non-empty origin strings, or None when unset.
        """
        if v is None:
            return None
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        return [i.strip() for i in v if i and i.strip()]

    @model_validator(mode="after")
    def resolve_allowed_origins(self) -> "AppSettings":
        """Apply loopback defaults outside production; fail fast inside it."""
        if not self.ALLOWED_ORIGINS:
            if self.APP_ENV == "production":
                raise ValueError(
                    "ALLOWED_ORIGINS must be configured in the production environment"
                )
            self.ALLOWED_ORIGINS = list(DEFAULT_ALLOWED_ORIGINS)
        return self

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"
