from __future__ import annotations

import os

from email_validator import EmailNotValidError, validate_email

from pdu.errors import InvalidEmailAddressError

_FALSE_VALUES = ("0", "false", "no", "off")


def email_deliverability_enabled() -> bool:
    """MX lookups are skipped in the test environment or when explicitly disabled."""
    if str(os.environ.get("APP_ENV", "development")) == "test":
        return False
    flag = str(os.environ.get("EMAIL_CHECK_DELIVERABILITY", "")).strip().lower()
    return flag not in _FALSE_VALUES


def validate_email_address(email: str, check_deliverability: bool | None = None) -> str:
    if not email or not isinstance(email, str):
        raise InvalidEmailAddressError("An email address is required.")
    if check_deliverability is None:
        check_deliverability = email_deliverability_enabled()
    try:
        validate_email(email, check_deliverability=check_deliverability)
    except EmailNotValidError as exc:
        raise InvalidEmailAddressError(str(exc)) from exc
    return email
