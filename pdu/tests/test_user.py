from __future__ import annotations

import os
import unittest
from datetime import datetime, timezone
from unittest.mock import patch

from email_validator import EmailUndeliverableError

from pdu.errors import (
    IncorrectPasswordError,
    InvalidEmailAddressError,
    InvalidPasswordError,
    InvalidUserLanguageError,
    InvalidUserRoleError,
)
from pdu.models import AccountState, User, UserLanguage, UserRole


class UserTests(unittest.TestCase):
    def setUp(self) -> None:
        os.environ["APP_ENV"] = "test"

    def test_create_admin_scenario(self) -> None:
        user = User.create_from_json(
            {"name": "Admin", "email": "admin@x.cz", "password": "admin", "role": "admin", "language": "en"}
        )
        self.assertIs(user.state, AccountState.UNVERIFIED)
        self.assertIs(user.role, UserRole.ADMIN)
        self.assertIs(user.language, UserLanguage.ENGLISH)
        self.assertFalse(user.has_2fa())
        self.assertTrue(user.verify_password("admin"))
        self.assertFalse(user.verify_password("x"))
        self.assertFalse(user.has_changed_email())
        self.assertEqual(user.scopes, ["normal", "admin"])
        self.assertTrue(user.has_scope("admin"))

    def test_create_invited_scenario(self) -> None:
        user = User.create_from_json({"name": "Invited", "email": "invited@x.cz"})
        self.assertTrue(user.is_invited())
        self.assertIs(user.state, AccountState.INVITED)
        self.assertIsNone(user.password_hash)
        self.assertFalse(user.verify_password(""))
        user.set_password("secret")
        self.assertFalse(user.is_invited())

    def test_unknown_role_and_language_default(self) -> None:
        user = User.create_from_json(
            {"name": "Jane", "email": "jane@x.cz", "password": "pw", "role": "root", "language": "de"}
        )
        self.assertIs(user.role, UserRole.NORMAL)
        self.assertIs(user.language, UserLanguage.ENGLISH)
        self.assertEqual(user.scopes, ["normal"])
        self.assertFalse(user.has_scope("admin"))

    def test_empty_password_is_rejected(self) -> None:
        for payload in (
            {"name": "A", "email": "a@x.cz", "password": ""},
            {"name": "B", "email": "b@x.cz", "password": "", "role": "admin", "language": "cs"},
        ):
            with self.assertRaises(InvalidPasswordError):
                User.create_from_json(payload)

    def test_invalid_email_is_rejected(self) -> None:
        with self.assertRaises(InvalidEmailAddressError):
            User("Broken", "not-an-address", "pw")

    def test_set_same_email_is_not_a_change(self) -> None:
        user = User("Jane", "jane@x.cz", "pw", state=AccountState.VERIFIED)
        user.set_email("jane@x.cz")
        self.assertFalse(user.has_changed_email())
        self.assertIs(user.state, AccountState.VERIFIED)

    def test_set_new_email_unverifies(self) -> None:
        user = User("Jane", "jane@x.cz", "pw", state=AccountState.BLOCKED_VERIFIED)
        user.set_email("jane@pdu.cz")
        self.assertTrue(user.has_changed_email())
        self.assertEqual(user.email, "jane@pdu.cz")
        self.assertIs(user.state, AccountState.BLOCKED_UNVERIFIED)

    def test_set_new_email_keeps_invited_state(self) -> None:
        user = User("Jane", "jane@x.cz", None, state=AccountState.INVITED)
        user.set_email("jane@pdu.cz")
        self.assertTrue(user.has_changed_email())
        self.assertIs(user.state, AccountState.INVITED)

    def test_set_email_without_mx_record_fails(self) -> None:
        user = User("Jane", "jane@x.cz", "pw")
        error = EmailUndeliverableError("The domain name nomx.cz does not accept email.")
        with patch("pdu.utils.validation.validate_email", side_effect=error):
            with self.assertRaises(InvalidEmailAddressError) as ctx:
                user.set_email("jane@nomx.cz")
        self.assertIn("does not accept email", str(ctx.exception))
        self.assertEqual(user.email, "jane@x.cz")
        self.assertFalse(user.has_changed_email())

    def test_deliverability_check_follows_environment(self) -> None:
        with patch("pdu.utils.validation.validate_email") as validate:
            User("Jane", "jane@x.cz", "pw")
        self.assertFalse(validate.call_args.kwargs["check_deliverability"])
        os.environ["APP_ENV"] = "production"
        try:
            with patch("pdu.utils.validation.validate_email") as validate:
                User("Jane", "jane@x.cz", "pw")
            self.assertTrue(validate.call_args.kwargs["check_deliverability"])
        finally:
            os.environ["APP_ENV"] = "test"

    def test_change_password(self) -> None:
        user = User("Jane", "jane@x.cz", "old")
        with self.assertRaises(IncorrectPasswordError):
            user.change_password("wrong", "new")
        self.assertFalse(user.has_changed_password())
        user.change_password("old", "new")
        self.assertTrue(user.has_changed_password())
        self.assertTrue(user.verify_password("new"))
        self.assertFalse(user.verify_password("old"))

    def test_setting_same_password_is_not_a_change(self) -> None:
        user = User("Jane", "jane@x.cz", "same")
        user.set_password("same")
        self.assertFalse(user.has_changed_password())
        with self.assertRaises(InvalidPasswordError):
            user.set_password("")

    def test_edit_from_json(self) -> None:
        user = User("Jane", "jane@x.cz", "pw", state=AccountState.VERIFIED)
        user.edit_from_json({"name": "Jana", "email": "jana@x.cz", "language": "cs", "role": "admin"})
        self.assertEqual(user.name, "Jana")
        self.assertIs(user.language, UserLanguage.CZECH)
        self.assertIs(user.role, UserRole.ADMIN)
        self.assertIs(user.state, AccountState.UNVERIFIED)
        with self.assertRaises(InvalidUserLanguageError):
            user.edit_from_json({"name": "Jana", "email": "jana@x.cz", "language": "de"})
        with self.assertRaises(InvalidUserRoleError):
            user.edit_from_json({"name": "Jana", "email": "jana@x.cz", "role": "root"})

    def test_to_dict(self) -> None:
        user = User("Jane", "jane@x.cz", "pw", role=UserRole.ADMIN, language=UserLanguage.CZECH)
        user.id = 7
        user.created_at = datetime(2023, 1, 1, tzinfo=timezone.utc)
        self.assertEqual(
            user.to_dict(),
            {
                "id": 7,
                "name": "Jane",
                "email": "jane@x.cz",
                "role": "admin",
                "language": "cs",
                "state": "unverified",
                "createdAt": "2023-01-01T00:00:00Z",
                "has2Fa": False,
            },
        )
        user.state = AccountState.BLOCKED_VERIFIED
        self.assertEqual(user.to_dict()["state"], "blocked")


if __name__ == "__main__":
    unittest.main()
