from __future__ import annotations

from typing import Callable

from pdu.logging import get_logger, log_account_event
from pdu.mail import MailDelivery, SendException
from pdu.models import User

logger = get_logger("notifications")


def deliver_best_effort(template: str, user: User, send: Callable[..., MailDelivery], *args) -> MailDelivery:
    """Run a mail send whose failure must not fail the surrounding operation."""
    try:
        return send(*args)
    except SendException as exc:
        logger.warning("Unable to send %s mail to user_id=%s: %s", template, user.id, exc)
        log_account_event(user.id, "mail", "failed", str(exc), {"template": template})
        return MailDelivery(template=template, sent=False, error=str(exc))
