"""Hand validated contact messages to the email provider."""
from __future__ import annotations

import logging
from typing import Protocol

from .messages import ContactMessage


logger = logging.getLogger(__name__)


class MailClient(Protocol):
    """Anything that can deliver a single plain-text message.

    Implementations return the provider's ``(id, response)`` pair and raise
    :class:`~mail_gateway.exceptions.ProviderError` on failure.
    """

    def send(self, sender: str, subject: str, body: str, recipient: str) -> tuple[str, str]:
        ...


class MailDispatcher:
    """Send contact messages to a fixed recipient."""

    def __init__(self, client: MailClient, recipient: str) -> None:
        self.client = client
        self.recipient = recipient

    def send(self, message: ContactMessage) -> tuple[str, str]:
        # The submitter's name becomes the subject line.
        message_id, response = self.client.send(
            message.email, message.name, message.message, self.recipient
        )
        logger.info("ID: %s Resp: %s", message_id, response)
        return message_id, response
