"""Application configuration."""
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_debug: bool = True
    log_level: str = "DEBUG"

    # Database - 필수 필드 (환경변수에서 반드시 읽어야 함)
    database_url: str = Field(
        ...,
        description="Database connection URL (required)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size (기본: 20)",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections (기본: 10)",
    )

    # Sentry Error Tracking
    sentry_dsn: str | None = Field(
        default=None,
        description="Sentry DSN for error tracking (required in production)",
    )
    sentry_traces_sample_rate: float = Field(
        default=0.05,
        description="Sentry transaction sampling rate (0.0-1.0, default 5%)",
    )

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Settlement (정산)
    settlement_timezone: str = Field(
        default="Asia/Seoul",
        description="정산 기간/월 경계 계산에 사용할 IANA 타임존",
    )
    default_settlement_method: str = Field(
        default="direct_subordinate",
        description="system_settings에 값이 없을 때 사용할 정산 방식 (direct_subordinate | differential)",
    )

    @field_validator("settlement_timezone")
    @classmethod
    def validate_settlement_timezone(cls, v: str) -> str:
        """Validate settlement timezone name."""
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"settlement_timezone is not a valid IANA zone: {v}")
        return v

    @field_validator("default_settlement_method")
    @classmethod
    def validate_default_settlement_method(cls, v: str) -> str:
        """Validate default settlement method."""
        if v not in ("direct_subordinate", "differential"):
            raise ValueError(
                "default_settlement_method must be 'direct_subordinate' or 'differential'"
            )
        return v

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            # 프로덕션에서는 debug=False 강제
            if self.app_debug:
                raise ValueError(
                    "app_debug must be False in production environment"
                )

            # 프로덕션에서 CORS에 "*" 금지
            origins = [o.strip() for o in self.cors_origins.split(",")]
            if "*" in origins:
                raise ValueError(
                    "CORS wildcard '*' is not allowed in production environment. "
                    "Specify explicit allowed origins."
                )

        return self

    @property
    def tzinfo(self) -> ZoneInfo:
        """Settlement timezone as a tzinfo object."""
        return ZoneInfo(self.settlement_timezone)

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
