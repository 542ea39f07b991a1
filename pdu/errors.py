from __future__ import annotations


class AccountError(Exception):
    pass


class InvalidEmailAddressError(AccountError):
    pass


class InvalidPasswordError(AccountError):
    pass


class IncorrectPasswordError(AccountError):
    pass


class InvalidCredentialsError(AccountError):
    pass


class InvalidAccountStateError(AccountError):
    pass


class LastAdminError(InvalidAccountStateError):
    pass


class ConflictedEmailAddressError(AccountError):
    pass


class ConflictedTotpError(AccountError):
    pass


class ResourceNotFoundError(AccountError):
    pass


class ResourceExpiredError(AccountError):
    pass


class BlockedAccountError(AccountError):
    pass


class IncorrectTotpCodeError(AccountError):
    pass


class InvalidUserRoleError(AccountError):
    pass


class InvalidUserLanguageError(AccountError):
    pass
