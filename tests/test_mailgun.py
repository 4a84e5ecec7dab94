from __future__ import annotations

import pytest
import requests

from mail_gateway.config import MailConfig
from mail_gateway.dispatch import MailDispatcher
from mail_gateway.exceptions import ProviderError
from mail_gateway.mailgun import MailgunClient
from mail_gateway.messages import ContactMessage


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self.text = text

    @property
    def ok(self):
        return self.status_code < 400

    def json(self):
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def post(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def make_client(session, **kwargs):
    return MailgunClient("mg.example.com", "key-private", "pubkey-public", session=session, **kwargs)


def test_send_posts_form_to_messages_endpoint():
    session = FakeSession(
        FakeResponse(payload={"id": "<abc@mg.example.com>", "message": "Queued. Thank you."})
    )
    client = make_client(session)

    result = client.send("jane@x.com", "Jane", "hi", "inbox@example.com")

    assert result == ("<abc@mg.example.com>", "Queued. Thank you.")
    url, kwargs = session.requests[0]
    assert url == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert kwargs["auth"] == ("api", "key-private")
    assert kwargs["data"] == {
        "from": "jane@x.com",
        "to": "inbox@example.com",
        "subject": "Jane",
        "text": "hi",
    }
    assert kwargs["timeout"] is None


def test_rejection_raises_provider_error():
    session = FakeSession(FakeResponse(status_code=401, text="Forbidden"))
    with pytest.raises(ProviderError) as excinfo:
        make_client(session).send("jane@x.com", "Jane", "hi", "inbox@example.com")
    assert excinfo.value.status_code == 401
    assert excinfo.value.response_text == "Forbidden"
    assert "401" in str(excinfo.value)


def test_transport_error_raises_provider_error():
    session = FakeSession(error=requests.ConnectionError("connection refused"))
    with pytest.raises(ProviderError) as excinfo:
        make_client(session).send("jane@x.com", "Jane", "hi", "inbox@example.com")
    assert excinfo.value.status_code is None
    assert isinstance(excinfo.value.__cause__, requests.ConnectionError)


def test_unreadable_response_raises_provider_error():
    session = FakeSession(FakeResponse(status_code=200, text="<html>"))
    with pytest.raises(ProviderError):
        make_client(session).send("jane@x.com", "Jane", "hi", "inbox@example.com")


def test_single_attempt_per_send():
    session = FakeSession(FakeResponse(status_code=503, text="Service Unavailable"))
    with pytest.raises(ProviderError):
        make_client(session).send("jane@x.com", "Jane", "hi", "inbox@example.com")
    assert len(session.requests) == 1


def test_from_config_uses_api_base():
    config = MailConfig(
        domain="mg.example.com",
        private_api_key="key-private",
        public_validation_key="pubkey-public",
        to_address="inbox@example.com",
        api_base="https://api.eu.mailgun.net/v3",
    )
    client = MailgunClient.from_config(config, session=FakeSession())
    assert client.messages_url == "https://api.eu.mailgun.net/v3/mg.example.com/messages"
    assert client.public_validation_key == "pubkey-public"


def test_client_requires_credentials():
    with pytest.raises(ValueError):
        MailgunClient("", "key-private")
    with pytest.raises(ValueError):
        MailgunClient("mg.example.com", "")


def test_dispatcher_maps_message_fields(mail_client):
    dispatcher = MailDispatcher(mail_client, "inbox@example.com")
    message = ContactMessage(name="Jane", email="jane@x.com", message="hi")

    assert dispatcher.send(message) == ("<20261018.1@mg.example.com>", "Queued. Thank you.")
    assert mail_client.calls == [("jane@x.com", "Jane", "hi", "inbox@example.com")]


def test_dispatcher_propagates_provider_errors():
    session = FakeSession(FakeResponse(status_code=400, text="'from' parameter is not a valid address"))
    dispatcher = MailDispatcher(make_client(session), "inbox@example.com")

    with pytest.raises(ProviderError):
        dispatcher.send(ContactMessage(name="Jane", email="not-an-address", message="hi"))
