from .timestamps import as_utc, format_timestamp, utc_now
from .validation import email_deliverability_enabled, validate_email_address

__all__ = [
    "as_utc",
    "email_deliverability_enabled",
    "format_timestamp",
    "utc_now",
    "validate_email_address",
]
