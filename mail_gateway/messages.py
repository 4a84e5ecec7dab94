"""Contact form payload decoding and honeypot check."""
from __future__ import annotations

import json
from dataclasses import dataclass

from .exceptions import MessageDecodeError


@dataclass(frozen=True)
class ContactMessage:
    name: str = ""
    email: str = ""
    message: str = ""
    honeypot: str = ""


FIELDS = ("name", "email", "message", "honeypot")


def decode_message(body: bytes | str) -> ContactMessage:
    """Decode a JSON request body into a :class:`ContactMessage`.

    Missing or null fields decode as empty strings and unknown fields are
    ignored. Anything that is not a JSON object of strings raises
    :class:`MessageDecodeError`.
    """
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MessageDecodeError(f"invalid JSON: {exc}") from exc

    if not isinstance(payload, dict):
        raise MessageDecodeError(
            f"expected a JSON object, got {type(payload).__name__}"
        )

    values = {}
    for field_name in FIELDS:
        value = payload.get(field_name)
        if value is None:
            value = ""
        elif not isinstance(value, str):
            raise MessageDecodeError(
                f"field {field_name!r} must be a string, got {type(value).__name__}"
            )
        values[field_name] = value
    return ContactMessage(**values)


def is_spam(message: ContactMessage) -> bool:
    """A filled-in honeypot means an automated submission."""
    return message.honeypot != ""
