from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

from pdu.logging import get_logger
from pdu.models import PasswordRecovery, User, UserInvitation, UserTotp, UserVerification

from .transport import MailMessage, MailTransport

logger = get_logger("mail")


@dataclass(frozen=True)
class MailDelivery:
    template: str
    sent: bool
    error: str | None = None


class BaseMailSender:
    def __init__(self, transport: MailTransport) -> None:
        self.transport = transport

    def send_message(self, template: str, user: User, params: Mapping[str, Any] | None = None) -> MailDelivery:
        variables = {"name": user.name, "email": user.email}
        if params:
            variables.update(params)
        message = MailMessage(
            template=template,
            recipient_email=user.email,
            recipient_name=user.name,
            language=user.language.value,
            variables=variables,
        )
        self.transport.send(message)
        logger.info("Sent %s mail to user_id=%s", template, user.id)
        return MailDelivery(template=template, sent=True)


class UserMailSender(BaseMailSender):
    def send_verification(self, verification: UserVerification, base_url: str = "") -> MailDelivery:
        params = {"url": f"{base_url}/account/verification/{verification.uuid}"}
        return self.send_message("accountVerification", verification.user, params)

    def send_password_changed(self, user: User) -> MailDelivery:
        return self.send_message("passwordChanged", user)

    def send_password_set(self, invitation: UserInvitation, base_url: str = "") -> MailDelivery:
        params = {"url": f"{base_url}/auth/password/set/{invitation.uuid}"}
        return self.send_message("passwordSet", invitation.user, params)

    def send_password_recovery(self, recovery: PasswordRecovery, base_url: str = "") -> MailDelivery:
        params = {"url": f"{base_url}/auth/password/reset/{recovery.uuid}"}
        return self.send_message("passwordRecovery", recovery.user, params)


class TotpMailSender(BaseMailSender):
    def send_totp_added(self, totp: UserTotp) -> MailDelivery:
        return self.send_message("totpAdded", totp.user, {"totp": totp.to_dict()})

    def send_totp_deleted(self, totp: UserTotp, user: User) -> MailDelivery:
        return self.send_message("totpDeleted", user, {"totp": totp.to_dict()})
