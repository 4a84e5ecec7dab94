"""Contact form relay endpoints."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from flask import Blueprint, Response, abort, current_app, request
from werkzeug.exceptions import HTTPException

from .config import MailConfig
from .dispatch import MailDispatcher
from .exceptions import MessageDecodeError, ProviderError
from .messages import decode_message, is_spam
from .origin import referer_allowed


logger = logging.getLogger(__name__)

relay_bp = Blueprint("relay", __name__)


@dataclass(frozen=True)
class GatewayState:
    """Read-only per-app state shared by every request thread."""

    config: Optional[MailConfig]
    dispatcher: Optional[MailDispatcher]

    @property
    def configured(self) -> bool:
        return self.config is not None and self.dispatcher is not None


def gateway_state() -> GatewayState:
    return current_app.extensions["mail_gateway"]


STATUS_OK = b'{"status":"ok"}'


def _status_ok() -> Response:
    return Response(STATUS_OK, mimetype="application/json")


@relay_bp.after_app_request
def apply_nosniff(response: Response) -> Response:
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


@relay_bp.app_errorhandler(HTTPException)
def handle_http_error(exc: HTTPException) -> Response:
    # Clients only ever see the status text.
    response = exc.get_response()
    response.set_data(exc.name)
    response.mimetype = "text/plain"
    return response


@relay_bp.route("/", methods=["OPTIONS"], provide_automatic_options=False)
def preflight() -> Response:
    response = _status_ok()
    # Flask-Cors skips responses that already carry an allowed origin, so the
    # preflight answer stays fixed whatever the request asks for.
    response.headers["Access-Control-Allow-Origin"] = "*"
    response.headers["Access-Control-Allow-Headers"] = "Content-Type"
    response.headers["Access-Control-Allow-Methods"] = "POST"
    return response


@relay_bp.route("/mail", methods=["POST"])
def send_mail() -> Response:
    state = gateway_state()
    if not state.configured:
        logger.error("mail request refused: gateway has no configuration")
        abort(500)

    if not referer_allowed(state.config.referers, request.referrer):
        logger.warning("mail request refused: referer %r not allowed", request.referrer)
        abort(403)

    try:
        message = decode_message(request.get_data())
    except MessageDecodeError as exc:
        logger.warning("failed to decode message body with error: %s", exc)
        abort(500)

    if is_spam(message):
        logger.info("honeypot field set, discarding submission from %r", message.email)
    else:
        try:
            state.dispatcher.send(message)
        except ProviderError as exc:
            logger.error("failed to send email with error: %s", exc)
            abort(500)

    return _status_ok()
