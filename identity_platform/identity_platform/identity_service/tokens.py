"""
Token issuance and verification.

Three bearer token kinds are handled here:

- Access token: short-lived JWT carrying the user's id, full name and email,
  signed with ACCESS_TOKEN_SECRET. Never stored, verified by signature and
  expiry only, so it cannot be revoked before it expires.
- Refresh token: longer-lived JWT carrying only the user id, signed with
  REFRESH_TOKEN_SECRET. An HMAC digest of every issued refresh token is
  stored; renewal requires the digest to still be present.
- Reset-password token: ``<value>.<secret>`` built from two random parts.
  Only HMAC(secret, value) and an expiry are stored, so the stored hash is
  useless without the secret half that travels in the emailed link.
"""
import hashlib
import hmac
import logging
import secrets
import uuid
from datetime import datetime, timedelta
from typing import Optional

import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import AuthError, AuthErrorKind
from .models import RefreshToken, User

logger = logging.getLogger(__name__)

RESET_TOKEN_SEPARATOR = "."


def hmac_sha256_hex(key: str, message: str) -> str:
    return hmac.new(key.encode("utf-8"), message.encode("utf-8"), hashlib.sha256).hexdigest()


class TokenIssuer:
    def __init__(self, settings: Settings):
        self.settings = settings

    # ---------------- Access tokens ----------------

    def generate_access_token(self, user: User, now: Optional[datetime] = None) -> str:
        issued_at = now or datetime.utcnow()
        payload = {
            "sub": str(user.id),
            "full_name": user.full_name,
            "email": user.email,
            "iat": issued_at,
            "exp": issued_at + timedelta(minutes=self.settings.ACCESS_TOKEN_DURATION_MINUTES),
        }
        return jwt.encode(payload, self.settings.ACCESS_TOKEN_SECRET, algorithm=self.settings.JWT_ALGORITHM)

    def verify_access_token(self, token: str) -> dict:
        return self._decode(token, self.settings.ACCESS_TOKEN_SECRET)

    # ---------------- Refresh tokens ----------------

    def hash_refresh_token(self, token: str) -> str:
        return hmac_sha256_hex(self.settings.REFRESH_TOKEN_SECRET, token)

    def generate_refresh_token(self, db: Session, user: User, now: Optional[datetime] = None) -> str:
        """
        Sign a refresh token and append its digest to the user's stored hashes.

        The digest is written as a single INSERT, so concurrent issuances for
        the same user never overwrite each other. The raw token is returned
        only after the commit succeeds.
        """
        issued_at = now or datetime.utcnow()
        payload = {
            "sub": str(user.id),
            "jti": uuid.uuid4().hex,
            "iat": issued_at,
            "exp": issued_at + timedelta(hours=self.settings.REFRESH_TOKEN_DURATION_HOURS),
        }
        refresh_token = jwt.encode(
            payload, self.settings.REFRESH_TOKEN_SECRET, algorithm=self.settings.JWT_ALGORITHM
        )

        db.add(RefreshToken(user_id=user.id, token_hash=self.hash_refresh_token(refresh_token)))
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to store refresh token hash: user_id=%s, error=%s", user.id, e)
            raise AuthError(AuthErrorKind.PERSISTENCE_FAILURE) from e

        return refresh_token

    def verify_refresh_token(self, db: Session, token: str) -> User:
        payload = self._decode(token, self.settings.REFRESH_TOKEN_SECRET)

        stored = (
            db.query(RefreshToken)
            .filter(
                RefreshToken.user_id == payload.get("sub"),
                RefreshToken.token_hash == self.hash_refresh_token(token),
            )
            .first()
        )
        if stored is None:
            logger.warning("Refresh token not on allow-list: user_id=%s", payload.get("sub"))
            raise AuthError(AuthErrorKind.TOKEN_INVALID, "The refresh token has been revoked.")

        return stored.user

    # ---------------- Reset-password tokens ----------------

    def generate_reset_password_token(self, db: Session, user: User, now: Optional[datetime] = None) -> str:
        reset_token_value = secrets.token_hex(32)
        reset_token_secret = secrets.token_hex(16)

        user.reset_password_token_hash = hmac_sha256_hex(reset_token_secret, reset_token_value)
        user.reset_password_token_expiry = (now or datetime.utcnow()) + timedelta(
            minutes=self.settings.RESET_PASSWORD_TOKEN_DURATION_MINUTES
        )
        db.add(user)
        try:
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("Failed to store reset token hash: user_id=%s, error=%s", user.id, e)
            raise AuthError(AuthErrorKind.PERSISTENCE_FAILURE) from e

        return f"{reset_token_value}{RESET_TOKEN_SEPARATOR}{reset_token_secret}"

    def verify_reset_password_token(self, db: Session, token: str, now: Optional[datetime] = None) -> User:
        value, separator, secret = token.partition(RESET_TOKEN_SEPARATOR)
        if not separator or not value or not secret:
            raise AuthError(AuthErrorKind.TOKEN_INVALID, "The reset token is malformed.")

        token_hash = hmac_sha256_hex(secret, value)
        user = db.query(User).filter(User.reset_password_token_hash == token_hash).first()
        if user is None or not hmac.compare_digest(user.reset_password_token_hash, token_hash):
            raise AuthError(AuthErrorKind.TOKEN_INVALID, "The reset token is invalid or has already been used.")

        expiry = user.reset_password_token_expiry
        if expiry is None or (now or datetime.utcnow()) >= expiry:
            raise AuthError(AuthErrorKind.TOKEN_EXPIRED, "The reset token has expired. Please request a new one.")

        return user

    # ---------------- Helpers ----------------

    def _decode(self, token: str, secret: str) -> dict:
        try:
            payload = jwt.decode(token, secret, algorithms=[self.settings.JWT_ALGORITHM])
        except jwt.ExpiredSignatureError as e:
            raise AuthError(AuthErrorKind.TOKEN_EXPIRED) from e
        except jwt.InvalidTokenError as e:
            raise AuthError(AuthErrorKind.TOKEN_INVALID) from e

        if not payload.get("sub"):
            raise AuthError(AuthErrorKind.TOKEN_INVALID, "The token does not identify a user.")
        return payload
