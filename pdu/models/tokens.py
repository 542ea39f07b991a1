from __future__ import annotations

import uuid
from datetime import datetime, timedelta

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from pdu.utils import as_utc, utc_now

from .db import Base

TOKEN_LIFETIME = timedelta(days=7)


class TokenMixin:
    uuid = Column(String(36), primary_key=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    def __init__(self, **kwargs) -> None:
        kwargs.setdefault("uuid", str(uuid.uuid4()))
        kwargs.setdefault("created_at", utc_now())
        super().__init__(**kwargs)


class ExpiringTokenMixin(TokenMixin):
    def expires_at(self) -> datetime:
        return as_utc(self.created_at) + TOKEN_LIFETIME

    def is_expired(self, now: datetime | None = None) -> bool:
        moment = now or utc_now()
        return moment >= self.expires_at()


class UserInvitation(ExpiringTokenMixin, Base):
    __tablename__ = "user_invitations"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    user = relationship("User", back_populates="invitation")


class UserVerification(ExpiringTokenMixin, Base):
    __tablename__ = "user_verifications"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    user = relationship("User", back_populates="verification")


class PasswordRecovery(ExpiringTokenMixin, Base):
    __tablename__ = "password_recoveries"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)

    user = relationship("User", back_populates="password_recovery")
