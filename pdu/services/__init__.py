from .accounts import AccountServices, build_account_services
from .notifications import deliver_best_effort
from .totp import TotpManager
from .users import UserManager

__all__ = [
    "AccountServices",
    "TotpManager",
    "UserManager",
    "build_account_services",
    "deliver_best_effort",
]
