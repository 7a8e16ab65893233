"""FastAPI dependencies: settings, components and the authentication check.

``require_authentication`` is the request-level authentication step. It reads
the Authorization header, verifies the bearer access token and records the
caller's identity on ``request.state``. It never touches the database, so an
access token stays valid until it expires.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .config import Settings
from .db import get_db
from .errors import AuthError, AuthErrorKind
from .store import CredentialStore
from .tokens import TokenIssuer

BEARER_PREFIX = "Bearer "


@dataclass(frozen=True)
class AuthContext:
    user_id: str
    token: str


def authenticate_header(authorization: Optional[str], issuer: TokenIssuer) -> AuthContext:
    """Verify an Authorization header value and return the caller identity."""
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise AuthError(AuthErrorKind.UNSUPPORTED_SCHEME)

    access_token = authorization[len(BEARER_PREFIX):].strip()
    payload = issuer.verify_access_token(access_token)
    return AuthContext(user_id=payload["sub"], token=access_token)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer(settings)


def get_credential_store(
    request: Request,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> CredentialStore:
    return CredentialStore(db, settings, hasher=request.app.state.password_hasher)


def get_email_sender(request: Request):
    return request.app.state.email_sender


def require_authentication(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthContext:
    context = authenticate_header(authorization, issuer)
    request.state.user_id = context.user_id
    request.state.token = context.token
    return context
