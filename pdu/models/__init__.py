from .db import Base, create_session_factory, init_db
from .enums import AccountState, UserLanguage, UserRole
from .tokens import TOKEN_LIFETIME, PasswordRecovery, UserInvitation, UserVerification
from .totp import UserTotp
from .user import User

__all__ = [
    "AccountState",
    "Base",
    "PasswordRecovery",
    "TOKEN_LIFETIME",
    "User",
    "UserInvitation",
    "UserLanguage",
    "UserRole",
    "UserTotp",
    "UserVerification",
    "create_session_factory",
    "init_db",
]
