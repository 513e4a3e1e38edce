"""Shared fixtures: a scriptable SMTP double and request factories."""

import asyncio

import aiosmtplib
import pytest

from mail_notifier.models import SendRequest


class DummySMTP:
    """Stand-in for ``aiosmtplib.SMTP`` recording what the transport does."""

    def __init__(self, hostname, port, use_tls=False, start_tls=None, timeout=None, **kwargs):
        self.hostname = hostname
        self.port = port
        self.use_tls = use_tls
        self.start_tls = start_tls
        self.timeout = timeout
        self.is_connected = False
        self.closed = False
        self.quit_called = False
        self.login_credentials = None
        self.sent = []
        # Behaviour knobs set by tests through the fixture
        self.connect_delay = 0.0
        self.connect_error = None
        self.login_error = None
        self.send_error = None
        self.send_delay = 0.0

    async def connect(self):
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_error is not None:
            raise self.connect_error
        self.is_connected = True

    async def login(self, user, password):
        if self.login_error is not None:
            raise self.login_error
        self.login_credentials = (user, password)

    async def send_message(self, message, sender=None, recipients=None):
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((message, sender, recipients))
        return {}, "250 OK"

    async def quit(self):
        self.quit_called = True
        self.is_connected = False
        self.closed = True

    def close(self):
        self.is_connected = False
        self.closed = True


class SMTPFactory:
    """Creates DummySMTP instances and applies pending behaviour to them."""

    def __init__(self):
        self.created = []
        self.behaviour = {}

    def __call__(self, **kwargs):
        smtp = DummySMTP(**kwargs)
        for name, value in self.behaviour.items():
            setattr(smtp, name, value)
        self.created.append(smtp)
        return smtp

    @property
    def last(self):
        return self.created[-1]

    @property
    def leaked(self):
        return [smtp for smtp in self.created if smtp.is_connected]


@pytest.fixture
def smtp_factory(monkeypatch):
    factory = SMTPFactory()
    monkeypatch.setattr("mail_notifier.transport.aiosmtplib.SMTP", factory)
    return factory


@pytest.fixture
def make_request():
    def factory(**overrides):
        payload = {
            "host": "smtp.example.com",
            "port": 465,
            "username": "mailer",
            "password": "secret",
            "from": "noreply@example.com",
            "to": "alice@example.com",
            "subject": "Hello",
            "html_body": "<p>Hello</p>",
        }
        payload.update(overrides)
        return SendRequest.model_validate(payload)

    return factory


@pytest.fixture
def memory_storage():
    """An in-memory blob store usable as the dereference collaborator."""
    blobs = {}
    requested = []

    async def dereference(uri):
        requested.append(uri)
        if uri not in blobs:
            raise FileNotFoundError(uri)
        return blobs[uri]

    dereference.blobs = blobs
    dereference.requested = requested
    return dereference


@pytest.fixture
def auth_error():
    return aiosmtplib.SMTPAuthenticationError(535, "5.7.8 Authentication credentials invalid")
