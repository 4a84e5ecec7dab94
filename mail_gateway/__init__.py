"""Application factory for the contact form mail gateway."""
from __future__ import annotations

from typing import Optional

from flask import Flask

from .config import BaseConfig, MailConfig, config_loaders, first_config, load_config
from .dispatch import MailClient, MailDispatcher
from .extensions import CORS_OPTIONS, cors
from .mailgun import MailgunClient
from .relay import GatewayState, relay_bp


def create_app(
    config_object: type[BaseConfig] | None = None,
    mail_config: Optional[MailConfig] = None,
    client: Optional[MailClient] = None,
    config_path: Optional[str] = None,
) -> Flask:
    """Build the gateway app.

    ``mail_config`` defaults to whatever :func:`load_config` finds at
    ``CONFIG_PATH`` (or ``config_path``, when given) or in the environment.
    ``client`` defaults to a :class:`MailgunClient` built from that
    configuration.
    """
    app = Flask(__name__)
    app.config.from_object(config_object or BaseConfig)
    if config_path:
        app.config["CONFIG_PATH"] = config_path

    if mail_config is None:
        mail_config = load_config(app.config["CONFIG_PATH"])

    dispatcher = None
    if mail_config is not None:
        dispatcher = MailDispatcher(
            client or MailgunClient.from_config(mail_config),
            mail_config.to_address,
        )
    app.extensions["mail_gateway"] = GatewayState(config=mail_config, dispatcher=dispatcher)

    cors.init_app(app, **CORS_OPTIONS)
    app.register_blueprint(relay_bp)

    @app.cli.command("check-config")
    def check_config_command() -> None:
        """Report where the mail configuration would be loaded from."""
        source, config = first_config(config_loaders(app.config["CONFIG_PATH"]))
        if config is None:
            print("No usable configuration found; mail sending is disabled.")
            raise SystemExit(1)
        print(f"Configuration loaded from {source}.")
        print(f"Domain: {config.domain}")
        print(f"Recipient: {config.to_address}")
        if config.referers:
            print(f"Allowed referers: {', '.join(config.referers)}")
        else:
            print("Allowed referers: any (no referers defined)")

    return app
