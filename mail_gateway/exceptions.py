"""Exceptions raised by the gateway."""
from __future__ import annotations


class MailGatewayError(Exception):
    """Base class for gateway errors."""


class ConfigurationError(MailGatewayError):
    """Configuration is missing or incomplete."""


class MessageDecodeError(MailGatewayError, ValueError):
    """Request body could not be decoded into a contact message."""


class ProviderError(MailGatewayError):
    """The email provider rejected or failed to process a send."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_text: str = "",
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text

    def __str__(self) -> str:
        detail = super().__str__()
        if self.status_code is not None:
            detail = f"{detail} (status {self.status_code})"
        if self.response_text:
            detail = f"{detail}: {self.response_text}"
        return detail
