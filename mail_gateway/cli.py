"""Process entry point: serve the gateway until interrupted."""
from __future__ import annotations

import logging
import os
import signal
import sys
import threading

import click

from . import create_app
from .config import BaseConfig
from .server import make_gateway_server


logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@click.command()
@click.option("--config", "config_path", default=None, help="Path to the JSON configuration file.")
@click.option("--host", default="0.0.0.0", show_default=True, help="Address to bind.")
def main(config_path: str | None, host: str) -> None:
    """Relay contact form submissions to Mailgun.

    Listens on $PORT and stops on SIGINT or SIGTERM, giving in-flight requests
    a short grace period to finish.
    """
    configure_logging(os.environ.get("LOG_LEVEL", BaseConfig.LOG_LEVEL))

    port = os.environ.get("PORT", "")
    if not port:
        logger.critical("$PORT must be set")
        sys.exit(1)
    try:
        port_number = int(port)
    except ValueError:
        logger.critical("$PORT must be a number, got %r", port)
        sys.exit(1)

    app = create_app(config_path=config_path)
    try:
        server = make_gateway_server(app, host, port_number)
    except OSError as exc:
        logger.critical("web server didn't start with error: %s", exc)
        sys.exit(1)

    stop = threading.Event()

    def request_stop(signum, frame) -> None:
        logger.info("received %s", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGINT, request_stop)
    signal.signal(signal.SIGTERM, request_stop)

    serving = threading.Thread(target=server.serve_forever, name="mail-gateway-http", daemon=True)
    serving.start()
    logger.info("listening on %s:%d", host, port_number)

    stop.wait()

    logger.info("shutting down")
    grace_period = app.config["SHUTDOWN_GRACE_PERIOD"]
    if not server.shutdown_gracefully(grace_period):
        logger.warning(
            "%d request(s) still running after %ss grace period",
            server.active_requests,
            grace_period,
        )
