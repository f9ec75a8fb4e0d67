import pytest
import requests

from conftest import run
from core.errors import ExternalUnavailable
from services import notifier as notifier_module
from services.notifier import MailgunNotifier, UnconfiguredNotifier


class FakeResponse:
    def __init__(self, status_code=200):
        self.status_code = status_code

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")


def _notifier():
    return MailgunNotifier(
        api_key="key-123",
        domain="mg.example.com",
        sender="Community <noreply@example.com>",
        frontend_url="https://community.example.com/",
        timeout=3.0,
    )


def test_profile_approved_posts_to_mailgun(monkeypatch):
    calls = []

    def fake_post(url, auth, data, timeout):
        calls.append((url, auth, data, timeout))
        return FakeResponse()

    monkeypatch.setattr(notifier_module.requests, "post", fake_post)

    run(_notifier().profile_approved("asha@example.com", "Asha Patil", 4200000002))

    assert len(calls) == 1
    url, auth, data, timeout = calls[0]
    assert url == "https://api.mailgun.net/v3/mg.example.com/messages"
    assert auth == ("api", "key-123")
    assert data["to"] == ["asha@example.com"]
    assert data["subject"] == notifier_module.APPROVED_SUBJECT
    assert "Dear Asha Patil" in data["text"]
    assert "https://community.example.com/matrimony/profile/4200000002" in data["text"]
    assert timeout == 3.0


@pytest.mark.parametrize(
    "failure",
    [requests.ConnectionError("connection refused"), requests.Timeout("read timed out")],
)
def test_transport_errors_become_external_unavailable(monkeypatch, failure):
    def fake_post(*args, **kwargs):
        raise failure

    monkeypatch.setattr(notifier_module.requests, "post", fake_post)

    with pytest.raises(ExternalUnavailable):
        run(_notifier().profile_approved("asha@example.com", "Asha Patil", 1))


def test_rejected_request_becomes_external_unavailable(monkeypatch):
    monkeypatch.setattr(notifier_module.requests, "post", lambda *a, **kw: FakeResponse(401))

    with pytest.raises(ExternalUnavailable):
        run(_notifier().profile_approved("asha@example.com", "Asha Patil", 1))


def test_unconfigured_notifier_sends_nothing(monkeypatch):
    def fail_post(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(notifier_module.requests, "post", fail_post)
    notifier = UnconfiguredNotifier()

    assert notifier.configured is False
    run(notifier.profile_approved("asha@example.com", "Asha Patil", 1))


def test_build_notifier_without_key_is_unconfigured(monkeypatch):
    monkeypatch.setattr(notifier_module.settings, "MAILGUN_API_KEY", "")
    assert isinstance(notifier_module.build_notifier(), UnconfiguredNotifier)


def test_build_notifier_with_key(monkeypatch):
    monkeypatch.setattr(notifier_module.settings, "MAILGUN_API_KEY", "key-123")
    monkeypatch.setattr(notifier_module.settings, "MAILGUN_DOMAIN", "mg.example.com")

    notifier = notifier_module.build_notifier()

    assert isinstance(notifier, MailgunNotifier)
    assert notifier.domain == "mg.example.com"
