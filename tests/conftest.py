from __future__ import annotations

import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from mail_gateway import create_app
from mail_gateway.config import MailConfig, TestingConfig
from mail_gateway.exceptions import ProviderError


ENV_VARS = ("MGDOMAIN", "MGPRIVATEKEY", "MGPUBLICKEY", "TOADDRESS", "REFERERS", "MGAPIBASE")


class RecordingClient:
    """Stands in for the Mailgun client and remembers every send."""

    def __init__(self, error: ProviderError | None = None) -> None:
        self.calls: list[tuple[str, str, str, str]] = []
        self.error = error

    def send(self, sender, subject, body, recipient):
        self.calls.append((sender, subject, body, recipient))
        if self.error is not None:
            raise self.error
        return "<20261018.1@mg.example.com>", "Queued. Thank you."


def make_config(**overrides) -> MailConfig:
    values = dict(
        domain="mg.example.com",
        private_api_key="key-private",
        public_validation_key="pubkey-public",
        to_address="inbox@example.com",
        referers=(),
    )
    values.update(overrides)
    return MailConfig(**values)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def mail_client():
    return RecordingClient()


@pytest.fixture
def mail_config():
    return make_config()


@pytest.fixture
def app(mail_config, mail_client):
    return create_app(TestingConfig, mail_config=mail_config, client=mail_client)


@pytest.fixture
def client(app):
    return app.test_client()
