from __future__ import annotations

from typing import Any, Iterable, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pdu.auth import JwtConfigurator
from pdu.errors import (
    AccountError,
    BlockedAccountError,
    ConflictedEmailAddressError,
    InvalidAccountStateError,
    LastAdminError,
    ResourceExpiredError,
    ResourceNotFoundError,
)
from pdu.logging import log_account_event
from pdu.mail import MailDelivery, UserMailSender
from pdu.models import PasswordRecovery, User, UserInvitation, UserRole, UserVerification

from .notifications import deliver_best_effort


class UserManager:
    """Account lifecycle: creation, editing, blocking, verification and password recovery.

    Mail sent as a side effect of create/edit is best effort and reported as a
    ``MailDelivery``; mail explicitly requested by the user (resend, recovery)
    propagates ``SendException``.
    """

    def __init__(
        self,
        session: Session,
        jwt_configurator: JwtConfigurator,
        mail_sender: UserMailSender,
        check_deliverability: bool | None = None,
    ) -> None:
        self.session = session
        self.jwt_configurator = jwt_configurator
        self.mail_sender = mail_sender
        self.check_deliverability = check_deliverability

    def is_email_taken(self, email: str, user_id: int | None = None) -> bool:
        with self.session.no_autoflush:
            user = self.session.query(User).filter_by(email=email).first()
        return user is not None and user.id != user_id

    def find_by_email(self, email: str) -> User | None:
        return self.session.query(User).filter_by(email=email).first()

    def get_by_email(self, email: str) -> User:
        user = self.find_by_email(email)
        if user is None:
            raise ResourceNotFoundError("User not found")
        return user

    def get_by_id(self, user_id: int) -> User:
        user = self.session.get(User, user_id)
        if user is None:
            raise ResourceNotFoundError("User not found")
        return user

    def list(self, roles: Iterable[UserRole | str] = ()) -> list[User]:
        query = self.session.query(User)
        selected = [UserRole(role) if isinstance(role, str) else role for role in roles]
        if selected:
            query = query.filter(User.role.in_(selected))
        return list(query.order_by(User.id).all())

    def admin_count(self) -> int:
        return self.session.query(User).filter_by(role=UserRole.ADMIN).count()

    def has_only_single_admin(self) -> bool:
        return self.admin_count() == 1

    def new_user(self, payload: Mapping[str, Any]) -> User:
        return User.create_from_json(payload, self.check_deliverability)

    def create(self, user: User, base_url: str = "") -> MailDelivery | None:
        if self.is_email_taken(user.email):
            raise ConflictedEmailAddressError("E-mail address is already used")
        self.session.add(user)
        self._commit_email(user)
        log_account_event(user.id, "create", "accepted", metadata={"state": user.state.name})
        if user.state.is_invited():
            return deliver_best_effort("passwordSet", user, self.send_invitation_email, user, base_url)
        if user.state.is_unverified():
            return deliver_best_effort("accountVerification", user, self.send_verification_email, user, base_url)
        return None

    def edit(self, user: User, payload: Mapping[str, Any], base_url: str = "") -> list[MailDelivery]:
        requested_role = payload.get("role", user.role.value)
        if user.role == UserRole.ADMIN and requested_role != UserRole.ADMIN.value and self.has_only_single_admin():
            raise LastAdminError("Admin user role change forbidden for the only admin user")
        try:
            user.edit_from_json(payload, self.check_deliverability)
        except AccountError:
            self._discard(user)
            raise
        if self.is_email_taken(user.email, user.id):
            self._discard(user)
            raise ConflictedEmailAddressError("E-mail address is already used")
        self._commit_email(user)
        log_account_event(user.id, "edit", "accepted", metadata={"email_changed": user.has_changed_email()})
        return self._notify_changes(user, base_url)

    def change_password(self, user: User, old_password: str, new_password: str) -> MailDelivery | None:
        user.change_password(old_password, new_password)
        self.session.commit()
        log_account_event(user.id, "change_password", "accepted")
        deliveries = self._notify_changes(user)
        return deliveries[0] if deliveries else None

    def delete(self, user: User) -> None:
        if user.role == UserRole.ADMIN and self.admin_count() <= 1:
            raise LastAdminError("Admin user deletion forbidden for the only admin user")
        user_id = user.id
        self.session.delete(user)
        self.session.commit()
        log_account_event(user_id, "delete", "accepted")

    def block(self, user: User) -> None:
        user.state = user.state.block()
        self.session.commit()
        log_account_event(user.id, "block", "accepted", metadata={"state": user.state.name})

    def unblock(self, user: User) -> None:
        user.state = user.state.unblock()
        self.session.commit()
        log_account_event(user.id, "unblock", "accepted", metadata={"state": user.state.name})

    def send_verification_email(self, user: User, base_url: str = "") -> MailDelivery:
        if user.state.is_verified():
            raise InvalidAccountStateError("User is already verified")
        verification = self._replace_token(user, "verification", UserVerification)
        self.session.commit()
        return self.mail_sender.send_verification(verification, base_url)

    def send_invitation_email(self, user: User, base_url: str = "") -> MailDelivery:
        if not user.state.is_invited():
            raise InvalidAccountStateError("User is not invited")
        invitation = self._replace_token(user, "invitation", UserInvitation)
        self.session.commit()
        return self.mail_sender.send_password_set(invitation, base_url)

    def resend(self, user: User, base_url: str = "") -> MailDelivery:
        if user.state.is_invited():
            return self.send_invitation_email(user, base_url)
        if user.state.is_unverified():
            return self.send_verification_email(user, base_url)
        raise InvalidAccountStateError("User is not in invited or unverified state")

    def get_verification(self, uuid: str) -> UserVerification:
        return self._get_token(UserVerification, uuid, "User verification not found")

    def get_invitation(self, uuid: str) -> UserInvitation:
        return self._get_token(UserInvitation, uuid, "Password set request not found")

    def get_password_recovery(self, uuid: str) -> PasswordRecovery:
        return self._get_token(PasswordRecovery, uuid, "Password recovery request not found")

    def verify(self, verification: UserVerification, base_url: str = "") -> User:
        user = verification.user
        if user.state.is_verified():
            raise InvalidAccountStateError("User is already verified")
        if verification.is_expired():
            user.verification = None
            self.session.commit()
            log_account_event(user.id, "verify", "rejected", "expired")
            deliver_best_effort("accountVerification", user, self.send_verification_email, user, base_url)
            raise ResourceExpiredError("Verification link expired")
        user.state = user.state.verify()
        user.verification = None
        self.session.commit()
        log_account_event(user.id, "verify", "accepted", metadata={"state": user.state.name})
        if user.state.is_blocked():
            raise BlockedAccountError("User is blocked")
        return user

    def create_password_recovery_request(self, user: User, base_url: str = "") -> MailDelivery:
        if not user.state.is_verified():
            raise InvalidAccountStateError("E-mail address is not verified")
        recovery = self._replace_token(user, "password_recovery", PasswordRecovery)
        self.session.commit()
        log_account_event(user.id, "password_recovery_request", "accepted")
        return self.mail_sender.send_password_recovery(recovery, base_url)

    def recover_password(self, uuid: str, password: str) -> User:
        recovery = self.get_password_recovery(uuid)
        user = recovery.user
        if recovery.is_expired():
            user.password_recovery = None
            self.session.commit()
            log_account_event(user.id, "password_recovery", "rejected", "expired")
            raise ResourceExpiredError("Password recovery request is expired")
        user.set_password(password)
        user.password_recovery = None
        self.session.commit()
        user.clear_change_flags()
        log_account_event(user.id, "password_recovery", "accepted")
        if user.state.is_blocked():
            raise BlockedAccountError("User is blocked")
        return user

    def set_invited_password(self, uuid: str, password: str) -> User:
        invitation = self.get_invitation(uuid)
        user = invitation.user
        if invitation.is_expired():
            user.invitation = None
            self.session.commit()
            log_account_event(user.id, "password_set", "rejected", "expired")
            raise ResourceExpiredError("Password set request is expired")
        verified_state = user.state.verify()
        user.set_password(password)
        user.state = verified_state
        user.invitation = None
        self.session.commit()
        user.clear_change_flags()
        log_account_event(user.id, "password_set", "accepted", metadata={"state": user.state.name})
        if user.state.is_blocked():
            raise BlockedAccountError("User is blocked")
        return user

    def create_jwt(self, user: User) -> str:
        return self.jwt_configurator.create_jwt(user)

    def _notify_changes(self, user: User, base_url: str = "") -> list[MailDelivery]:
        deliveries = []
        if user.has_changed_email():
            if user.state.is_invited():
                deliveries.append(deliver_best_effort("passwordSet", user, self.send_invitation_email, user, base_url))
            else:
                deliveries.append(
                    deliver_best_effort("accountVerification", user, self.send_verification_email, user, base_url)
                )
        if user.has_changed_password():
            deliveries.append(deliver_best_effort("passwordChanged", user, self.mail_sender.send_password_changed, user))
        user.clear_change_flags()
        return deliveries

    def _replace_token(self, user: User, attribute: str, token_class):
        if getattr(user, attribute) is not None:
            setattr(user, attribute, None)
            self.session.flush()
        token = token_class(user=user)
        self.session.add(token)
        return token

    def _get_token(self, token_class, uuid: str, message: str):
        token = self.session.get(token_class, uuid)
        if token is None:
            raise ResourceNotFoundError(message)
        return token

    def _commit_email(self, user: User) -> None:
        try:
            self.session.commit()
        except IntegrityError as exc:
            self._discard(user)
            raise ConflictedEmailAddressError("E-mail address is already used") from exc

    def _discard(self, user: User) -> None:
        self.session.rollback()
        user.clear_change_flags()
