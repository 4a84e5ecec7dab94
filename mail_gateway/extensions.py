"""Shared extensions."""
from __future__ import annotations

from flask_cors import CORS


cors = CORS()

# Any page may post to the gateway; the referer allow-list does the gating.
CORS_OPTIONS = dict(
    origins="*",
    send_wildcard=True,
    methods=["POST"],
    allow_headers=["Content-Type"],
)
