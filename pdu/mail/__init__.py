"""Transactional e-mail for account lifecycle notifications."""

from .senders import MailDelivery, TotpMailSender, UserMailSender
from .transport import MailgunTransport, MailMessage, MailTransport, SendException

__all__ = [
    "MailDelivery",
    "MailMessage",
    "MailTransport",
    "MailgunTransport",
    "SendException",
    "TotpMailSender",
    "UserMailSender",
]
