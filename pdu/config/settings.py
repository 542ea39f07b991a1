"""Environment-backed application settings with strict validation."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

logger = logging.getLogger(__name__)

REQUIRED_ENV_VARS = (
    "DATABASE_URL",
    "JWT_PRIVATE_KEY_PATH",
    "JWT_CERTIFICATE_PATH",
    "MAILGUN_API_KEY",
    "MAILGUN_DOMAIN",
    "MAIL_FROM_EMAIL",
)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _read_env_var(name: str, env: Mapping[str, str | None]) -> str:
    value = env.get(name)
    if value is None or str(value).strip() == "":
        raise RuntimeError(f"Missing required environment variable: {name}")
    return str(value).strip()


def _read_flag(name: str, env: Mapping[str, str | None], default: bool) -> bool:
    value = env.get(name)
    if value is None or str(value).strip() == "":
        return default
    return str(value).strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    database_url: str
    jwt_private_key_path: str
    jwt_certificate_path: str
    mailgun_api_key: str
    mailgun_domain: str
    mailgun_base_url: str
    mail_from_email: str
    mail_from_name: str
    email_check_deliverability: bool
    app_env: str


def load_settings(env: Mapping[str, str | None] | None = None) -> Settings:
    """Load and validate environment variables into a Settings object."""
    source_env = os.environ if env is None else env

    missing = [key for key in REQUIRED_ENV_VARS if not str(source_env.get(key) or "").strip()]
    if missing:
        raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")

    app_env = str(source_env.get("APP_ENV", "development")).strip() or "development"

    settings = Settings(
        database_url=_read_env_var("DATABASE_URL", source_env),
        jwt_private_key_path=_read_env_var("JWT_PRIVATE_KEY_PATH", source_env),
        jwt_certificate_path=_read_env_var("JWT_CERTIFICATE_PATH", source_env),
        mailgun_api_key=_read_env_var("MAILGUN_API_KEY", source_env),
        mailgun_domain=_read_env_var("MAILGUN_DOMAIN", source_env),
        mailgun_base_url=str(source_env.get("MAILGUN_BASE_URL") or "https://api.mailgun.net").strip().rstrip("/"),
        mail_from_email=_read_env_var("MAIL_FROM_EMAIL", source_env),
        mail_from_name=str(source_env.get("MAIL_FROM_NAME") or "PDU manager").strip(),
        email_check_deliverability=_read_flag("EMAIL_CHECK_DELIVERABILITY", source_env, app_env != "test"),
        app_env=app_env,
    )

    logger.info("Loaded application settings for env=%s", settings.app_env)
    return settings
