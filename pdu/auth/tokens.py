from __future__ import annotations

from datetime import datetime, timedelta
from pathlib import Path

import jwt
from cryptography import x509
from cryptography.hazmat.primitives import serialization
from sqlalchemy.orm import Session

from pdu.models import User
from pdu.utils import utc_now

JWT_ALGORITHM = "ES256"
JWT_LIFETIME = timedelta(minutes=90)


class JwtConfigurationError(Exception):
    pass


class JwtConfigurator:
    """Loads the signing key pair: an EC private key and the matching X.509 certificate."""

    def __init__(self, private_key_path: str | Path, certificate_path: str | Path) -> None:
        self.private_key_path = Path(private_key_path)
        self.certificate_path = Path(certificate_path)
        self._signing_key = None
        self._verification_key = None

    @property
    def signing_key(self):
        if self._signing_key is None:
            pem = self._read(self.private_key_path, "Private key")
            try:
                self._signing_key = serialization.load_pem_private_key(pem, password=None)
            except (ValueError, TypeError) as exc:
                raise JwtConfigurationError(f"Private key file is invalid, reason: {exc}") from exc
        return self._signing_key

    @property
    def verification_key(self):
        if self._verification_key is None:
            pem = self._read(self.certificate_path, "Certificate")
            try:
                self._verification_key = x509.load_pem_x509_certificate(pem).public_key()
            except ValueError as exc:
                raise JwtConfigurationError(f"Certificate file is invalid, reason: {exc}") from exc
        return self._verification_key

    def create_jwt(self, user: User, now: datetime | None = None) -> str:
        issued_at = (now or utc_now()).replace(microsecond=0)
        payload = {
            "iat": issued_at,
            "exp": issued_at + JWT_LIFETIME,
            "uid": user.id,
        }
        return jwt.encode(payload, self.signing_key, algorithm=JWT_ALGORITHM)

    def decode(self, token: str) -> dict:
        return jwt.decode(
            token,
            self.verification_key,
            algorithms=[JWT_ALGORITHM],
            options={"require": ["exp", "uid"]},
        )

    def _read(self, path: Path, label: str) -> bytes:
        try:
            content = path.read_bytes()
        except OSError as exc:
            raise JwtConfigurationError(f"{label} file not found") from exc
        if not content.strip():
            raise JwtConfigurationError(f"{label} file is empty")
        return content


class BearerAuthenticator:
    def __init__(self, configurator: JwtConfigurator, session: Session) -> None:
        self.configurator = configurator
        self.session = session

    def authenticate(self, header: str | None) -> User | None:
        token = self.parse_authorization_header(header or "")
        if not token:
            return None
        return self.authenticate_user(token)

    def authenticate_user(self, token: str) -> User | None:
        try:
            payload = self.configurator.decode(token)
        except jwt.InvalidTokenError:
            return None
        uid = payload.get("uid")
        if not isinstance(uid, int) or isinstance(uid, bool):
            return None
        return self.session.get(User, uid)

    @staticmethod
    def parse_authorization_header(header: str) -> str | None:
        if not header.startswith("Bearer "):
            return None
        token = header[len("Bearer "):].strip()
        return token or None
