from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from .models import User

MIN_PASSWORD_LENGTH = 4
# passlib refuses to hash secrets larger than this many bytes
MAX_PASSWORD_BYTES = 4096


def _normalize_email(value: str) -> str:
    return value.strip().lower() if isinstance(value, str) else value


def _check_password_size(value: str) -> str:
    if len(value.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes long")
    return value


class SignupRequest(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def strip_names(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_size(cls, value):
        return _check_password_size(value)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=MAX_PASSWORD_BYTES)

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)

    @field_validator("password")
    @classmethod
    def password_size(cls, value):
        return _check_password_size(value)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, value):
        return _normalize_email(value)


class ResetPasswordRequest(BaseModel):
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=MAX_PASSWORD_BYTES)
    password_confirm: str = Field(..., min_length=1)

    @field_validator("password")
    @classmethod
    def password_size(cls, value):
        return _check_password_size(value)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.password_confirm:
            raise ValueError("Passwords do not match")
        return self


class UserPublic(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthResponse(TokenPair):
    user: UserPublic


class MessageResponse(BaseModel):
    message: str


def to_public_user(user: User) -> UserPublic:
    """The only fields of a user that may leave the service."""
    return UserPublic(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
    )
