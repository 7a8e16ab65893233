"""
Credential store: persistence and verification of user credentials.
"""
import logging
from typing import Optional

from passlib.exc import PasswordSizeError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .config import Settings
from .errors import AuthError, AuthErrorKind
from .models import User
from .passwords import PasswordHasher

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore:
    """
    Reads and writes ``User`` records.

    Passwords are hashed only by ``create``, ``change_password`` and
    ``reset_password``; every other mutation leaves ``password_hash`` untouched.
    """

    def __init__(self, db: Session, settings: Settings, hasher: Optional[PasswordHasher] = None):
        self.db = db
        self.hasher = hasher or PasswordHasher(settings.PASSWORD_HASH_ROUNDS)

    def get_by_id(self, user_id: str) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_by_email(self, email: str) -> Optional[User]:
        return self.db.query(User).filter(User.email == normalize_email(email)).first()

    def find_by_credentials(self, email: str, password: str) -> User:
        """
        Return the user owning ``email`` if ``password`` matches.

        Unknown email, wrong password and a password too large to hash all
        raise the same INVALID_CREDENTIALS error so the response does not
        reveal whether the account exists.
        """
        user = self.get_by_email(email)
        if user is None:
            self.hasher.dummy_verify()
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        try:
            matches = self.hasher.verify_password(password, user.password_hash)
        except PasswordSizeError:
            matches = False
        if not matches:
            raise AuthError(AuthErrorKind.INVALID_CREDENTIALS)

        return user

    def create(self, first_name: str, last_name: str, email: str, password: str) -> User:
        email = normalize_email(email)
        if self.get_by_email(email) is not None:
            raise AuthError(AuthErrorKind.DUPLICATE_EMAIL)

        user = User(
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            email=email,
            password_hash=self.hasher.hash_password(password),
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent signup for the same address
            self.db.rollback()
            raise AuthError(AuthErrorKind.DUPLICATE_EMAIL) from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to create user email=%s: %s", email, e)
            raise AuthError(AuthErrorKind.PERSISTENCE_FAILURE) from e

        self.db.refresh(user)
        logger.info("User created: user_id=%s", user.id)
        return user

    def change_password(self, user: User, new_password: str) -> User:
        user.password_hash = self.hasher.hash_password(new_password)
        self._commit(user, "change password")
        return user

    def reset_password(self, user: User, new_password: str) -> User:
        """
        Store ``new_password`` and consume the user's reset token.

        The update only applies while the reset hash loaded with ``user`` is
        still stored, so of two requests presenting the same token only one
        changes the password.
        """
        expected_hash = user.reset_password_token_hash
        if expected_hash is None:
            raise AuthError(AuthErrorKind.TOKEN_INVALID, "The reset token is invalid or has already been used.")

        password_hash = self.hasher.hash_password(new_password)
        try:
            updated = (
                self.db.query(User)
                .filter(User.id == user.id, User.reset_password_token_hash == expected_hash)
                .update(
                    {
                        User.password_hash: password_hash,
                        User.reset_password_token_hash: None,
                        User.reset_password_token_expiry: None,
                    },
                    synchronize_session=False,
                )
            )
            if updated != 1:
                self.db.rollback()
                logger.warning("Reset token already consumed: user_id=%s", user.id)
                raise AuthError(AuthErrorKind.TOKEN_INVALID, "The reset token is invalid or has already been used.")
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to reset password: user_id=%s, error=%s", user.id, e)
            raise AuthError(AuthErrorKind.PERSISTENCE_FAILURE) from e

        self.db.refresh(user)
        return user

    def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> User:
        if first_name is not None:
            user.first_name = first_name.strip()
        if last_name is not None:
            user.last_name = last_name.strip()
        self._commit(user, "update profile")
        return user

    def _commit(self, user: User, action: str) -> None:
        self.db.add(user)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to %s: user_id=%s, error=%s", action, user.id, e)
            raise AuthError(AuthErrorKind.PERSISTENCE_FAILURE) from e
