"""Application configuration loaded from environment variables.

Settings for the database, CORS, session cookies, verification links
and outbound mail. Uses pydantic-settings for validation and .env file support.
"""

import uuid

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "feedback_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "immediate_feedback"
    database_user: str = "feedback_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    # Local mode: DEFAULT_USER_ID provides user context without JWT
    # Hosted mode: auth_enabled=True, JWT cookie required on every request
    default_user_id: uuid.UUID | None = None
    auth_enabled: bool = False
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "immediate-feedback"
    auth_audience: str = "immediate-feedback"
    auth_cookie_name: str = "feedback.session-token"

    # Verification links: http://<link_host>/<action>?id=<user>&t=<token>
    link_host: str = "localhost:8000"
    system_name: str = "Immediate Feedback System"

    # Email
    email_from: str = "noreply@immediatefeedback.local"
    resend_api_key: SecretStr = SecretStr("")
    mail_timeout_seconds: float = 10.0

    # Rate limiting ("count/period", e.g. "5/hour")
    rate_limit_enabled: bool = True
    rate_limit_verification: str = "5/hour"

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_settings(self) -> "Settings":
        """Validate cross-field and production requirements.

        Checks:
        - CORS must not use wildcard origin (incompatible with credentials)
        - LINK_HOST must be a bare host[:port], links add the scheme themselves
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars when auth is enabled in production
        """
        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        host = self.link_host.strip()
        if not host or "://" in host or "/" in host or "?" in host:
            msg = (
                "LINK_HOST must be a bare host name (optionally with port), "
                f"without scheme or path. Got: {self.link_host!r}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if self.auth_enabled:
                secret_value = self.auth_secret.get_secret_value()
                if not secret_value:
                    msg = (
                        "AUTH_SECRET must be set when AUTH_ENABLED=true in production. "
                        'Generate with: python -c "import secrets; '
                        'print(secrets.token_hex(32))"'
                    )
                    raise ValueError(msg)
                if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                    msg = (
                        f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                        "characters for adequate security."
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
