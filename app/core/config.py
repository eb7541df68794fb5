"""Application configuration loaded from environment variables.

Settings for database, API, authentication, email verification and mail
delivery. Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "jobboard_dev_password"  # nosec B105

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
    database_name: str = "jobboard"
    database_user: str = "jobboard_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # CORS (Security)
    # Production: Set ALLOWED_ORIGINS to specific domain(s)
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Authentication
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "jobboard-api"
    auth_audience: str = "jobboard"
    jwt_ttl_minutes: int = 60

    # Email verification
    verification_token_ttl_minutes: int = 60

    # Public URL of this API, used to build verification links
    backend_url: str = "http://localhost:8000"

    # Mail delivery
    # "log" writes verification links to the application log (local development)
    mail_transport: Literal["resend", "log"] = "log"
    email_from: str = "noreply@jobfinder.com"
    resend_api_key: SecretStr = SecretStr("")

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_auth: str = "10/minute"  # login, verify, check
    rate_limit_mail: str = "3/minute"  # register, resend (endpoints that send mail)
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants and production security requirements.

        Checks:
        - Token lifetimes must be positive (all environments)
        - CORS must not use wildcard origin (all environments)
        - Database password must not be the default in production
        - AUTH_SECRET must be set and >= 32 chars in production
        - Mail must be delivered through a real transport in production
        """
        if self.jwt_ttl_minutes <= 0:
            msg = f"JWT_TTL_MINUTES must be positive. Got: {self.jwt_ttl_minutes}"
            raise ValueError(msg)
        if self.verification_token_ttl_minutes <= 0:
            msg = (
                "VERIFICATION_TOKEN_TTL_MINUTES must be positive. "
                f"Got: {self.verification_token_ttl_minutes}"
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "List the frontend origins explicitly."
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.auth_secret.get_secret_value()
            if not secret_value:
                msg = (
                    "AUTH_SECRET must be set in production. "
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

            if self.mail_transport == "log":
                msg = (
                    "MAIL_TRANSPORT=log never delivers verification emails. "
                    "Set MAIL_TRANSPORT=resend and RESEND_API_KEY in production."
                )
                raise ValueError(msg)

        return self


settings = Settings()
