"""Application settings loaded from the environment."""

from typing import Optional

from pydantic import Field, PostgresDsn, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from prepcoach.core.config.enums import Environment


class Settings(BaseSettings):
    """Process-wide configuration.

    Built once at startup and handed to ``create_container``. Values that
    are deployment specific (credentials, price ids, redirect base URL) live
    here rather than in code.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "PrepCoach"
    API_V1_STR: str = "/api/v1"
    ENVIRONMENT: Environment = Environment.LOCAL
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "prepcoach"
    POSTGRES_PASSWORD: str = "prepcoach"
    POSTGRES_DB: str = "prepcoach"
    POSTGRES_SSLMODE: str = "prefer"
    db_pool_size: int = 10
    db_pool_max_overflow: int = 20
    RUN_ALEMBIC_MIGRATIONS: bool = False

    # Billing platform
    STRIPE_SECRET_KEY: str = ""
    STRIPE_WEBHOOK_SECRET: str = ""
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300
    STRIPE_PRICE_PLAN_MAPPING: dict[str, str] = Field(
        default_factory=lambda: {
            "price_monthly": "premium_monthly",
            "price_yearly": "premium_yearly",
        }
    )
    STRIPE_DEFAULT_PAID_PLAN: str = "premium_monthly"
    STRIPE_MAX_RETRIES: int = 3
    STRIPE_BASE_DELAY_MS: int = 500

    # Inference service
    ANTHROPIC_API_KEY: Optional[str] = None
    ANTHROPIC_MODEL: str = "claude-3-5-sonnet-20240620"
    INFERENCE_TIMEOUT_SECONDS: float = 60.0
    INFERENCE_MAX_RETRIES: int = 3
    INFERENCE_BASE_DELAY_MS: int = 1000
    INFERENCE_DEADLINE_SECONDS: Optional[float] = 90.0

    # Product
    SITE_URL: str = "http://localhost:5173"
    FREE_MONTHLY_QUESTION_LIMIT: int = 5

    @field_validator("ANTHROPIC_API_KEY", mode="before")
    @classmethod
    def _blank_key_is_absent(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("SITE_URL")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @computed_field  # type: ignore[misc]
    @property
    def SQLALCHEMY_ASYNC_DATABASE_URI(self) -> str:  # noqa: N802
        """Async SQLAlchemy URI for asyncpg."""
        return str(
            PostgresDsn.build(
                scheme="postgresql+asyncpg",
                username=self.POSTGRES_USER,
                password=self.POSTGRES_PASSWORD,
                host=self.POSTGRES_HOST,
                port=self.POSTGRES_PORT,
                path=self.POSTGRES_DB,
            )
        )

    @property
    def inference_enabled(self) -> bool:
        """Whether a live inference credential is configured."""
        return self.ANTHROPIC_API_KEY is not None

    @property
    def is_local(self) -> bool:
        """Whether running in a local or test environment."""
        return self.ENVIRONMENT in (Environment.LOCAL, Environment.TEST)
