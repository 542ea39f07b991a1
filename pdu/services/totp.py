from __future__ import annotations

from typing import Any, Mapping

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pdu.errors import ConflictedTotpError, IncorrectPasswordError, IncorrectTotpCodeError, ResourceNotFoundError
from pdu.logging import log_account_event
from pdu.mail import TotpMailSender
from pdu.models import User, UserTotp

from .notifications import deliver_best_effort


class TotpManager:
    def __init__(self, session: Session, mail_sender: TotpMailSender) -> None:
        self.session = session
        self.mail_sender = mail_sender

    def list(self, user: User) -> list[UserTotp]:
        query = self.session.query(UserTotp).filter_by(user_id=user.id)
        return list(query.order_by(UserTotp.created_at).all())

    def get(self, user: User, uuid: str) -> UserTotp:
        totp = self.session.get(UserTotp, uuid)
        if totp is None or totp.user_id != user.id:
            raise ResourceNotFoundError("TOTP token not found")
        return totp

    def add(self, user: User, payload: Mapping[str, Any]) -> UserTotp:
        """Register an authenticator once its first code and the account password check out."""
        secret = payload["secret"]
        if not secret:
            raise ValueError("Secret cannot be empty")
        if not UserTotp.is_valid_secret(secret):
            raise ValueError("Secret must be a base32 encoded string")
        totp = UserTotp(secret=secret, name=payload["name"])
        if not totp.verify(payload["code"]):
            raise IncorrectTotpCodeError("Incorrect code")
        if not user.verify_password(payload["password"]):
            raise IncorrectPasswordError("Incorrect password")
        if self._is_registered(totp):
            raise ConflictedTotpError("TOTP name or secret is already used")
        user.add_totp(totp)
        self.session.add(totp)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            raise ConflictedTotpError("TOTP name or secret is already used") from exc
        log_account_event(user.id, "totp_add", "accepted", metadata={"uuid": totp.uuid})
        deliver_best_effort("totpAdded", user, self.mail_sender.send_totp_added, totp)
        return totp

    def delete(self, user: User, uuid: str, code: str, password: str) -> None:
        totp = self.get(user, uuid)
        if not user.verify_password(password):
            raise IncorrectPasswordError("Incorrect password")
        if not user.verify_totp_code(code):
            raise IncorrectTotpCodeError("Incorrect TOTP code")
        user.delete_totp(totp)
        self.session.commit()
        log_account_event(user.id, "totp_delete", "accepted", metadata={"uuid": uuid})
        deliver_best_effort("totpDeleted", user, self.mail_sender.send_totp_deleted, totp, user)

    def _is_registered(self, totp: UserTotp) -> bool:
        with self.session.no_autoflush:
            existing = (
                self.session.query(UserTotp)
                .filter(or_(UserTotp.name == totp.name, UserTotp.secret == totp.secret))
                .first()
            )
        return existing is not None
