from sqlalchemy import Column, String, ForeignKey, DateTime, Index, Integer
from datetime import datetime
from .db import Base
from sqlalchemy.orm import relationship
import uuid


class User(Base):
    __tablename__ = "users"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    # Password reset (hash + expiry are set and cleared together)
    reset_password_token_hash = Column(String, nullable=True, index=True)
    reset_password_token_expiry = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    refresh_tokens = relationship(
        "RefreshToken",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="RefreshToken.id",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def refresh_token_hashes(self) -> list:
        return [row.token_hash for row in self.refresh_tokens]


class RefreshToken(Base):
    """One row per issued refresh token; only the HMAC digest is stored."""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (
        Index('ix_refresh_tokens_user_id_token_hash', 'user_id', 'token_hash'),
    )
