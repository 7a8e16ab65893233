"""
Auth Router - signup, login, token refresh and password reset.
"""
import logging
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from ..config import Settings
from ..db import get_db
from ..dependencies import get_credential_store, get_email_sender, get_settings, get_token_issuer
from ..email_service import build_reset_password_email, send_email_with_defaults
from ..errors import AuthError
from ..schemas import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    ResetPasswordRequest,
    SignupRequest,
    TokenPair,
    to_public_user,
)
from ..store import CredentialStore
from ..tokens import TokenIssuer
from ..utils.event_logger import log_auth_event

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

# Generic response to prevent user enumeration
FORGOT_PASSWORD_MESSAGE = "If the account exists, a reset link has been sent."


@router.post("/signup", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def signup(
    payload: SignupRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
):
    user = store.create(payload.first_name, payload.last_name, payload.email, payload.password)
    log_auth_event("signup", user.id, request)

    access_token = issuer.generate_access_token(user)
    refresh_token = issuer.generate_refresh_token(db, user)
    return AuthResponse(user=to_public_user(user), access_token=access_token, refresh_token=refresh_token)


@router.post("/login", response_model=AuthResponse)
def login(
    payload: LoginRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
):
    try:
        user = store.find_by_credentials(payload.email, payload.password)
    except AuthError:
        log_auth_event("login_failure", None, request, {"email": payload.email})
        raise

    access_token = issuer.generate_access_token(user)
    refresh_token = issuer.generate_refresh_token(db, user)
    log_auth_event("login_success", user.id, request)
    return AuthResponse(user=to_public_user(user), access_token=access_token, refresh_token=refresh_token)


@router.post("/token/refresh", response_model=TokenPair)
def refresh_tokens(
    payload: RefreshRequest,
    request: Request,
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
):
    """
    Exchange a refresh token for a new access token and refresh token.

    The presented refresh token must still be on the user's allow-list of
    stored hashes; a valid signature alone is not enough.
    """
    user = issuer.verify_refresh_token(db, payload.refresh_token)

    access_token = issuer.generate_access_token(user)
    refresh_token = issuer.generate_refresh_token(db, user)
    log_auth_event("token_refresh", user.id, request)
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    settings: Settings = Depends(get_settings),
    email_sender=Depends(get_email_sender),
    db: Session = Depends(get_db),
):
    user = store.get_by_email(payload.email)
    if user is None:
        logger.info("Password reset requested for unknown email")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    reset_token = issuer.generate_reset_password_token(db, user)
    try:
        send_email_with_defaults(
            email_sender, settings, **build_reset_password_email(settings, user, reset_token)
        )
    except AuthError as e:
        # Same response as an unknown email; the user can ask again
        logger.error("Reset email not delivered: user_id=%s, error=%s", user.id, e.error_description)
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)
    log_auth_event("password_reset_request", user.id, request)
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password/{reset_token}", response_model=MessageResponse)
def reset_password(
    reset_token: str,
    payload: ResetPasswordRequest,
    request: Request,
    store: CredentialStore = Depends(get_credential_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    db: Session = Depends(get_db),
):
    user = issuer.verify_reset_password_token(db, reset_token)
    store.reset_password(user, payload.password)

    log_auth_event("password_reset", user.id, request)
    return MessageResponse(message="Password updated successfully")
