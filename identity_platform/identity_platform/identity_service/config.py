"""
Configuration management for the identity service
"""
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class Settings(BaseSettings):
    """Identity service configuration loaded from environment variables"""

    # Token secrets (required, no defaults)
    ACCESS_TOKEN_SECRET: str = Field(..., min_length=1)
    REFRESH_TOKEN_SECRET: str = Field(..., min_length=1)

    # Token lifetimes
    ACCESS_TOKEN_DURATION_MINUTES: int = Field(15, gt=0)
    REFRESH_TOKEN_DURATION_HOURS: int = Field(24, gt=0)
    RESET_PASSWORD_TOKEN_DURATION_MINUTES: int = Field(15, gt=0)
    JWT_ALGORITHM: str = "HS256"

    # Password hashing work factor (pbkdf2_sha256 rounds)
    PASSWORD_HASH_ROUNDS: int = Field(29000, ge=1000)

    # Database Configuration
    DATABASE_URL: str = "sqlite:///./identity.db"

    # SMTP Configuration
    SMTP_HOST: str = "smtp.mailtrap.io"
    SMTP_PORT: int = 2525
    SMTP_USERNAME: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None
    SMTP_USE_TLS: bool = False
    SMTP_TIMEOUT_SECONDS: float = 10.0
    EMAIL_FROM: str = "no-reply@identity.local"
    RESET_PASSWORD_URL: str = "http://localhost:3000/reset-password"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_token_secrets(self):
        """Access and refresh tokens must not share a signing key."""
        if self.ACCESS_TOKEN_SECRET.strip() == "" or self.REFRESH_TOKEN_SECRET.strip() == "":
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must not be blank")
        if self.ACCESS_TOKEN_SECRET == self.REFRESH_TOKEN_SECRET:
            raise ValueError("ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must differ")
        return self
