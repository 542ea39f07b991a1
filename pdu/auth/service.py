from __future__ import annotations

from sqlalchemy.orm import Session

from pdu.errors import BlockedAccountError, IncorrectTotpCodeError, InvalidCredentialsError
from pdu.logging import log_account_event
from pdu.models import User

from .tokens import JwtConfigurator


class AuthService:
    def __init__(self, session: Session, jwt_configurator: JwtConfigurator) -> None:
        self.session = session
        self.jwt_configurator = jwt_configurator

    def sign_in(self, email: str, password: str, code: str | None = None) -> str:
        user = self.session.query(User).filter_by(email=email).first()
        if user is None or not user.verify_password(password):
            log_account_event(user.id if user else None, "sign_in", "rejected", "invalid_credentials")
            raise InvalidCredentialsError("Invalid credentials")
        if user.has_2fa():
            if not code or not user.verify_totp_code(code):
                log_account_event(user.id, "sign_in", "rejected", "incorrect_totp_code")
                raise IncorrectTotpCodeError("Incorrect TOTP code")
            # persist last_used_at so the same code cannot be replayed
            self.session.commit()
        if user.state.is_blocked():
            log_account_event(user.id, "sign_in", "rejected", "blocked")
            raise BlockedAccountError("Account is blocked")
        log_account_event(user.id, "sign_in", "accepted")
        return self.jwt_configurator.create_jwt(user)

    def refresh(self, user: User) -> str:
        if user.state.is_blocked():
            raise BlockedAccountError("Account is blocked")
        return self.jwt_configurator.create_jwt(user)
