from __future__ import annotations

from enum import Enum

from pdu.errors import InvalidAccountStateError


class _LookupMixin:
    @classmethod
    def try_from(cls, value):
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None


class UserRole(_LookupMixin, Enum):
    NORMAL = "normal"
    ADMIN = "admin"

    DEFAULT = "normal"


class UserLanguage(_LookupMixin, Enum):
    CZECH = "cs"
    ENGLISH = "en"

    DEFAULT = "en"


class AccountState(Enum):
    """Verification and blocking status of an account.

    The verified/unverified/invited axis and the blocked axis are folded into
    one value. Transitions return a new state and never mutate anything.
    """

    UNVERIFIED = 0
    VERIFIED = 1
    BLOCKED_UNVERIFIED = 2
    BLOCKED_VERIFIED = 3
    INVITED = 4
    BLOCKED_INVITED = 5

    DEFAULT = 0

    def to_string(self) -> str:
        if self.is_blocked():
            return "blocked"
        return _STATE_NAMES[self]

    def is_blocked(self) -> bool:
        return self in _UNBLOCKED

    def is_invited(self) -> bool:
        return self in (AccountState.INVITED, AccountState.BLOCKED_INVITED)

    def is_verified(self) -> bool:
        return self in (AccountState.VERIFIED, AccountState.BLOCKED_VERIFIED)

    def is_unverified(self) -> bool:
        return self in (AccountState.UNVERIFIED, AccountState.BLOCKED_UNVERIFIED)

    def block(self) -> AccountState:
        if self not in _BLOCKED:
            raise InvalidAccountStateError("User is already blocked")
        return _BLOCKED[self]

    def unblock(self) -> AccountState:
        if self not in _UNBLOCKED:
            raise InvalidAccountStateError("User is already unblocked")
        return _UNBLOCKED[self]

    def verify(self) -> AccountState:
        if self not in _VERIFIED:
            raise InvalidAccountStateError("User is already verified")
        return _VERIFIED[self]

    def unverify(self) -> AccountState:
        if self not in _UNVERIFIED:
            raise InvalidAccountStateError("User is already unverified")
        return _UNVERIFIED[self]


_STATE_NAMES = {
    AccountState.UNVERIFIED: "unverified",
    AccountState.VERIFIED: "verified",
    AccountState.INVITED: "invited",
}

_BLOCKED = {
    AccountState.UNVERIFIED: AccountState.BLOCKED_UNVERIFIED,
    AccountState.VERIFIED: AccountState.BLOCKED_VERIFIED,
    AccountState.INVITED: AccountState.BLOCKED_INVITED,
}

_UNBLOCKED = {blocked: unblocked for unblocked, blocked in _BLOCKED.items()}

_VERIFIED = {
    AccountState.UNVERIFIED: AccountState.VERIFIED,
    AccountState.INVITED: AccountState.VERIFIED,
    AccountState.BLOCKED_UNVERIFIED: AccountState.BLOCKED_VERIFIED,
    AccountState.BLOCKED_INVITED: AccountState.BLOCKED_VERIFIED,
}

_UNVERIFIED = {
    AccountState.VERIFIED: AccountState.UNVERIFIED,
    AccountState.BLOCKED_VERIFIED: AccountState.BLOCKED_UNVERIFIED,
}
