from __future__ import annotations

import binascii
from datetime import datetime, timedelta

import pyotp
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from pdu.utils import as_utc, format_timestamp, utc_now

from .db import Base
from .tokens import TokenMixin

TOTP_LEEWAY = timedelta(seconds=15)


class UserTotp(TokenMixin, Base):
    """A TOTP authenticator registered by a user for two-factor sign-in."""

    __tablename__ = "user_totp"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    secret = Column(String(32), nullable=False, unique=True)
    name = Column(String(255), nullable=False, unique=True)
    last_used_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="totp")

    @staticmethod
    def is_valid_secret(secret: str) -> bool:
        if not secret or not isinstance(secret, str):
            return False
        try:
            pyotp.TOTP(secret).byte_secret()
        except (binascii.Error, ValueError):
            return False
        return True

    def verify(self, code: str, now: datetime | None = None) -> bool:
        """Check a code and record its use.

        A code that also matches the step of the previous successful use is a
        replay and is rejected.
        """
        if not code:
            return False
        moment = now or utc_now()
        totp = pyotp.TOTP(self.secret)
        if not self._matches(totp, code, moment):
            return False
        last_used_at = as_utc(self.last_used_at)
        if last_used_at is not None and self._matches(totp, code, last_used_at):
            return False
        self.last_used_at = moment
        return True

    def to_dict(self) -> dict:
        return {
            "uuid": self.uuid,
            "name": self.name,
            "createdAt": format_timestamp(self.created_at),
            "lastUsedAt": format_timestamp(self.last_used_at),
        }

    def _matches(self, totp: pyotp.TOTP, code: str, moment: datetime) -> bool:
        offsets = (-TOTP_LEEWAY, timedelta(0), TOTP_LEEWAY)
        return any(totp.verify(code, for_time=moment + offset) for offset in offsets)
