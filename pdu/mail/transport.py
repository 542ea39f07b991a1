from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx


class SendException(Exception):
    pass


@dataclass(frozen=True)
class MailMessage:
    template: str
    recipient_email: str
    recipient_name: str | None = None
    language: str | None = None
    variables: Mapping[str, Any] = field(default_factory=dict)


class MailTransport:
    def send(self, message: MailMessage) -> None:
        raise NotImplementedError


class MailgunTransport(MailTransport):
    """Sends stored Mailgun templates; the template version is the recipient's language."""

    DEFAULT_BASE_URL = "https://api.mailgun.net"

    def __init__(
        self,
        api_key: str,
        domain: str,
        from_email: str,
        from_name: str = "PDU manager",
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
        timeout_seconds: float = 10.0,
    ) -> None:
        self.domain = domain.strip().lower()
        self.sender = f"{from_name} <{from_email.strip()}>"
        self.base_url = (base_url or self.DEFAULT_BASE_URL).strip().rstrip("/")
        self.client = http_client or httpx.Client(
            base_url=self.base_url,
            auth=("api", api_key),
            timeout=httpx.Timeout(timeout_seconds),
        )

    def send(self, message: MailMessage) -> None:
        recipient = message.recipient_email
        if message.recipient_name:
            recipient = f"{message.recipient_name} <{message.recipient_email}>"
        data = {
            "from": self.sender,
            "to": recipient,
            "template": message.template,
            "t:variables": json.dumps(dict(message.variables), default=str),
        }
        if message.language:
            data["t:version"] = message.language
        try:
            response = self.client.post(f"/v3/{self.domain}/messages", data=data)
        except httpx.HTTPError as exc:
            raise SendException(f"Mailgun request failed: {exc}") from exc
        if not 200 <= response.status_code < 300:
            raise SendException(f"Mailgun rejected message: status={response.status_code} body={response.text[:500]}")

    def close(self) -> None:
        self.client.close()
