from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.orm import Session

from pdu.auth import AuthService, BearerAuthenticator, JwtConfigurator
from pdu.config import Settings
from pdu.logging import get_logger
from pdu.mail import MailgunTransport, MailTransport, TotpMailSender, UserMailSender

from .totp import TotpManager
from .users import UserManager

logger = get_logger("services")


@dataclass
class AccountServices:
    users: UserManager
    totp: TotpManager
    auth: AuthService
    authenticator: BearerAuthenticator


def build_account_services(settings: Settings, session: Session, transport: MailTransport | None = None) -> AccountServices:
    """Wire the account managers for one database session."""
    jwt_configurator = JwtConfigurator(settings.jwt_private_key_path, settings.jwt_certificate_path)
    if transport is None:
        transport = MailgunTransport(
            api_key=settings.mailgun_api_key,
            domain=settings.mailgun_domain,
            from_email=settings.mail_from_email,
            from_name=settings.mail_from_name,
            base_url=settings.mailgun_base_url,
        )
    logger.info("Built account services for env=%s", settings.app_env)
    return AccountServices(
        users=UserManager(
            session,
            jwt_configurator,
            UserMailSender(transport),
            check_deliverability=settings.email_check_deliverability,
        ),
        totp=TotpManager(session, TotpMailSender(transport)),
        auth=AuthService(session, jwt_configurator),
        authenticator=BearerAuthenticator(jwt_configurator, session),
    )
