from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from sqlalchemy import create_engine
from sqlalchemy.orm import Session

from pdu.config import load_settings
from pdu.mail import MailgunTransport, MailMessage, MailTransport, SendException
from pdu.models import Base, User
from pdu.services import AccountServices, TotpManager, UserManager, build_account_services, deliver_best_effort


class DummyTransport(MailTransport):
    def __init__(self) -> None:
        self.messages: list[MailMessage] = []

    def send(self, message: MailMessage) -> None:
        self.messages.append(message)


class AccountServicesTests(unittest.TestCase):
    def setUp(self) -> None:
        os.environ["APP_ENV"] = "test"
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.session = Session(self.engine)
        self.env = {
            "DATABASE_URL": "sqlite+pysqlite:///:memory:",
            "JWT_PRIVATE_KEY_PATH": "/etc/pdu/jwt/private.pem",
            "JWT_CERTIFICATE_PATH": "/etc/pdu/jwt/certificate.pem",
            "MAILGUN_API_KEY": "key-test",
            "MAILGUN_DOMAIN": "mg.pdu.cz",
            "MAIL_FROM_EMAIL": "noreply@pdu.cz",
            "APP_ENV": "test",
        }

    def tearDown(self) -> None:
        self.session.close()
        self.engine.dispose()

    def test_build_shares_configuration(self) -> None:
        transport = DummyTransport()
        services = build_account_services(load_settings(self.env), self.session, transport)

        self.assertIsInstance(services, AccountServices)
        self.assertIsInstance(services.users, UserManager)
        self.assertIsInstance(services.totp, TotpManager)
        self.assertIs(services.users.jwt_configurator, services.auth.jwt_configurator)
        self.assertIs(services.authenticator.configurator, services.auth.jwt_configurator)
        self.assertIs(services.users.mail_sender.transport, transport)
        self.assertEqual(str(services.auth.jwt_configurator.private_key_path), "/etc/pdu/jwt/private.pem")

        services.users.create(User.create_from_json({"name": "Jane", "email": "jane@x.cz"}), "https://pdu.x.cz")
        self.assertEqual([message.template for message in transport.messages], ["passwordSet"])

    def test_build_defaults_to_mailgun(self) -> None:
        services = build_account_services(load_settings(self.env), self.session)
        transport = services.totp.mail_sender.transport
        self.assertIsInstance(transport, MailgunTransport)
        self.assertEqual(transport.domain, "mg.pdu.cz")
        self.assertEqual(transport.sender, "PDU manager <noreply@pdu.cz>")
        transport.close()

    def test_deliverability_setting_is_scoped_to_the_manager(self) -> None:
        env = dict(self.env, EMAIL_CHECK_DELIVERABILITY="true")
        services = build_account_services(load_settings(env), self.session, DummyTransport())
        self.assertTrue(services.users.check_deliverability)

        with patch("pdu.utils.validation.validate_email") as validate:
            user = services.users.new_user({"name": "Jane", "email": "jane@x.cz", "password": "pw"})
        self.assertTrue(validate.call_args.kwargs["check_deliverability"])

        self.session.add(user)
        self.session.commit()
        with patch("pdu.utils.validation.validate_email") as validate:
            services.users.edit(user, {"name": "Jane", "email": "jane@pdu.cz"})
        self.assertTrue(validate.call_args.kwargs["check_deliverability"])

        with patch("pdu.utils.validation.validate_email") as validate:
            User("John", "john@x.cz", "pw")
        self.assertFalse(validate.call_args.kwargs["check_deliverability"])


class BestEffortDeliveryTests(unittest.TestCase):
    def setUp(self) -> None:
        os.environ["APP_ENV"] = "test"

    def test_failure_is_reported(self) -> None:
        user = User("Jane", "jane@x.cz", "pw")

        def send() -> None:
            raise SendException("mailbox unavailable")

        with self.assertLogs("pdu.accounts", level="INFO") as logs:
            delivery = deliver_best_effort("passwordChanged", user, send)

        self.assertFalse(delivery.sent)
        self.assertEqual(delivery.template, "passwordChanged")
        self.assertEqual(delivery.error, "mailbox unavailable")
        self.assertIn('"outcome": "failed"', logs.output[0])

    def test_other_errors_propagate(self) -> None:
        user = User("Jane", "jane@x.cz", "pw")

        def send() -> None:
            raise RuntimeError("bug")

        with self.assertRaises(RuntimeError):
            deliver_best_effort("passwordChanged", user, send)


if __name__ == "__main__":
    unittest.main()
