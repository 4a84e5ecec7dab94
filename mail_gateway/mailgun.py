"""Mailgun HTTP API client."""
from __future__ import annotations

import logging
from typing import Optional

import requests

from .config import DEFAULT_API_BASE, MailConfig
from .exceptions import ProviderError


logger = logging.getLogger(__name__)


class MailgunClient:
    """Send plain-text messages through ``POST /<domain>/messages``.

    One attempt per call. ``timeout`` defaults to ``None`` so the call is
    bounded only by the serving layer.
    """

    def __init__(
        self,
        domain: str,
        private_api_key: str,
        public_validation_key: str = "",
        api_base: str = DEFAULT_API_BASE,
        session: Optional[requests.Session] = None,
        timeout: Optional[float] = None,
    ) -> None:
        if not domain:
            raise ValueError("Mailgun domain is missing.")
        if not private_api_key:
            raise ValueError("Mailgun private API key is missing.")
        self.domain = domain
        self.private_api_key = private_api_key
        # Only used by Mailgun's address validation API, kept for parity with
        # the configuration record.
        self.public_validation_key = public_validation_key
        self.api_base = api_base.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: MailConfig, **kwargs) -> "MailgunClient":
        return cls(
            config.domain,
            config.private_api_key,
            config.public_validation_key,
            api_base=config.api_base,
            **kwargs,
        )

    @property
    def messages_url(self) -> str:
        return f"{self.api_base}/{self.domain}/messages"

    def send(self, sender: str, subject: str, body: str, recipient: str) -> tuple[str, str]:
        """Send one message and return Mailgun's ``(id, message)`` pair."""
        try:
            response = self.session.post(
                self.messages_url,
                auth=("api", self.private_api_key),
                data={
                    "from": sender,
                    "to": recipient,
                    "subject": subject,
                    "text": body,
                },
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise ProviderError(f"request to Mailgun failed: {exc}") from exc

        if not response.ok:
            raise ProviderError(
                "Mailgun rejected the message",
                status_code=response.status_code,
                response_text=response.text,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(
                "Mailgun returned an unreadable response",
                status_code=response.status_code,
                response_text=response.text,
            ) from exc
        if not isinstance(payload, dict):
            raise ProviderError(
                "Mailgun returned an unexpected response",
                status_code=response.status_code,
                response_text=response.text,
            )

        return str(payload.get("id", "")), str(payload.get("message", ""))
