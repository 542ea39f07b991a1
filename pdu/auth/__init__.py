from .service import AuthService
from .tokens import JWT_ALGORITHM, JWT_LIFETIME, BearerAuthenticator, JwtConfigurationError, JwtConfigurator

__all__ = [
    "AuthService",
    "BearerAuthenticator",
    "JWT_ALGORITHM",
    "JWT_LIFETIME",
    "JwtConfigurationError",
    "JwtConfigurator",
]
