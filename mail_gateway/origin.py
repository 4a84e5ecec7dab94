"""Referer allow-list check."""
from __future__ import annotations

import logging
from typing import Iterable, Optional


logger = logging.getLogger(__name__)


def referer_allowed(referers: Iterable[str], referer: Optional[str]) -> bool:
    """Return whether ``referer`` may use the gateway.

    An empty allow-list means the check is not configured and every request
    passes. Otherwise the header must match one entry exactly.
    """
    allowed = tuple(referers)
    if not allowed:
        logger.warning("no referers defined")
        return True
    return (referer or "") in allowed
