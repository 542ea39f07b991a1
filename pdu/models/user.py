from __future__ import annotations

from typing import Any, Mapping

from passlib.hash import argon2
from sqlalchemy import Column, DateTime, Enum, Integer, String, UniqueConstraint
from sqlalchemy.orm import reconstructor, relationship

from pdu.errors import (
    IncorrectPasswordError,
    InvalidPasswordError,
    InvalidUserLanguageError,
    InvalidUserRoleError,
)
from pdu.utils import format_timestamp, utc_now, validate_email_address

from .db import Base
from .enums import AccountState, UserLanguage, UserRole
from .totp import UserTotp


def _enum_values(enum_class) -> list[str]:
    return [member.value for member in enum_class]


class User(Base):
    __tablename__ = "users"
    __table_args__ = (UniqueConstraint("email", name="uq_users_email"),)

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column("password", String(255), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", native_enum=False, values_callable=_enum_values, length=15),
        nullable=False,
        default=UserRole.DEFAULT,
    )
    language = Column(
        Enum(UserLanguage, name="user_language", native_enum=False, values_callable=_enum_values, length=7),
        nullable=False,
        default=UserLanguage.DEFAULT,
    )
    state = Column(
        Enum(AccountState, name="account_state", native_enum=False, length=32),
        nullable=False,
        default=AccountState.DEFAULT,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    invitation = relationship("UserInvitation", back_populates="user", uselist=False, cascade="all, delete-orphan")
    verification = relationship("UserVerification", back_populates="user", uselist=False, cascade="all, delete-orphan")
    password_recovery = relationship("PasswordRecovery", back_populates="user", uselist=False, cascade="all, delete-orphan")
    totp = relationship("UserTotp", back_populates="user", cascade="all, delete-orphan")

    def __init__(
        self,
        name: str,
        email: str,
        password: str | None,
        role: UserRole = UserRole.DEFAULT,
        language: UserLanguage = UserLanguage.DEFAULT,
        state: AccountState = AccountState.DEFAULT,
        check_deliverability: bool | None = None,
    ) -> None:
        super().__init__(name=name, role=role, language=language, state=state, created_at=utc_now())
        self.email = validate_email_address(email, check_deliverability)
        if password is not None:
            self.set_password(password)
        self.clear_change_flags()

    @reconstructor
    def clear_change_flags(self) -> None:
        self._email_changed = False
        self._password_changed = False

    @classmethod
    def create_from_json(cls, payload: Mapping[str, Any], check_deliverability: bool | None = None) -> User:
        password = payload.get("password")
        return cls(
            payload["name"],
            payload["email"],
            password,
            UserRole.try_from(payload.get("role")) or UserRole.DEFAULT,
            UserLanguage.try_from(payload.get("language")) or UserLanguage.DEFAULT,
            AccountState.INVITED if password is None else AccountState.DEFAULT,
            check_deliverability,
        )

    def edit_from_json(self, payload: Mapping[str, Any], check_deliverability: bool | None = None) -> None:
        self.name = payload["name"]
        self.set_email(payload["email"], check_deliverability)
        if "language" in payload:
            language = UserLanguage.try_from(payload["language"])
            if language is None:
                raise InvalidUserLanguageError("Invalid language")
            self.language = language
        if "role" in payload:
            role = UserRole.try_from(payload["role"])
            if role is None:
                raise InvalidUserRoleError("Invalid role")
            self.role = role

    def set_email(self, email: str, check_deliverability: bool | None = None) -> None:
        """``check_deliverability`` of None defers to the environment."""
        validate_email_address(email, check_deliverability)
        if self.email != email:
            if self.state.is_verified():
                self.state = self.state.unverify()
            self._email_changed = True
        self.email = email

    def has_changed_email(self) -> bool:
        return self._email_changed

    def is_invited(self) -> bool:
        return self.password_hash is None

    def set_password(self, password: str) -> None:
        if password is None or password == "":
            raise InvalidPasswordError("Empty new password.")
        self._password_changed = not self.verify_password(password)
        self.password_hash = argon2.hash(password)

    def verify_password(self, password: str) -> bool:
        if self.password_hash is None or password is None:
            return False
        return argon2.verify(password, self.password_hash)

    def change_password(self, old_password: str, new_password: str) -> None:
        if not self.verify_password(old_password):
            raise IncorrectPasswordError("Incorrect current password.")
        self.set_password(new_password)

    def has_changed_password(self) -> bool:
        return self._password_changed

    @property
    def scopes(self) -> list[str]:
        scopes = ["normal"]
        if self.role == UserRole.ADMIN:
            scopes.append("admin")
        return scopes

    def has_scope(self, scope: str) -> bool:
        return scope in self.scopes

    def add_totp(self, totp: UserTotp) -> None:
        if totp not in self.totp:
            self.totp.append(totp)

    def delete_totp(self, totp: UserTotp) -> None:
        if totp in self.totp:
            self.totp.remove(totp)

    def has_2fa(self) -> bool:
        return len(self.totp) != 0

    def verify_totp_code(self, code: str) -> bool:
        for totp in self.totp:
            if totp.verify(code):
                return True
        return False

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
            "language": self.language.value,
            "state": self.state.to_string(),
            "createdAt": format_timestamp(self.created_at),
            "has2Fa": self.has_2fa(),
        }
