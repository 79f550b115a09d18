from __future__ import annotations

import base64
import json
from datetime import datetime, timedelta, timezone

import pytest

from reasigna.config import get_settings
from reasigna.schemas import User
from reasigna.security import PlainSessionCodec, SignedSessionCodec, build_codec


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def employee() -> User:
    return User(id=2, username="user1", password="pass1", role="employee", name="Operador 1")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 2, 6, 0, tzinfo=timezone.utc))


def test_plain_credential_is_base64_json_with_expiry(clock):
    codec = PlainSessionCodec(clock=clock)
    credential = codec.issue(employee())

    payload = json.loads(base64.b64decode(credential))
    assert payload["id"] == 2
    assert payload["username"] == "user1"
    assert payload["role"] == "employee"
    assert payload["exp"] == int((clock.now + timedelta(hours=8)).timestamp() * 1000)
    assert "password" not in payload


def test_credential_valid_until_eight_hours_pass(clock):
    codec = PlainSessionCodec(clock=clock)
    credential = codec.issue(employee())

    clock.advance(hours=7, minutes=59)
    claims = codec.validate(credential)
    assert claims is not None
    assert claims.id == 2
    assert claims.role == "employee"

    clock.advance(minutes=1)
    assert codec.validate(credential) is None

    clock.advance(hours=1)
    assert codec.validate(credential) is None


@pytest.mark.parametrize(
    "credential",
    [
        "",
        "not base64 at all",
        base64.b64encode(b"not json").decode(),
        base64.b64encode(b"[1, 2, 3]").decode(),
        base64.b64encode(json.dumps({"id": 1, "username": "admin", "role": "admin"}).encode()).decode(),
        base64.b64encode(json.dumps({"id": 1, "username": "admin", "role": "owner", "exp": 1}).encode()).decode(),
    ],
)
def test_malformed_credentials_fail_closed(clock, credential):
    assert PlainSessionCodec(clock=clock).validate(credential) is None


def test_plain_credential_can_be_rewritten_by_its_holder(clock):
    codec = PlainSessionCodec(clock=clock)
    payload = json.loads(base64.b64decode(codec.issue(employee())))
    payload["role"] = "admin"
    forged = base64.b64encode(json.dumps(payload).encode()).decode()

    claims = codec.validate(forged)
    assert claims is not None
    assert claims.is_admin


def test_signed_credential_rejects_tampering(clock):
    codec = SignedSessionCodec("top-secret", clock=clock)
    credential = codec.issue(employee())
    assert codec.validate(credential).id == 2

    body, signature = credential.rsplit(".", 1)
    payload = json.loads(base64.b64decode(body))
    payload["role"] = "admin"
    forged_body = base64.b64encode(json.dumps(payload).encode()).decode()
    assert codec.validate(f"{forged_body}.{signature}") is None
    assert codec.validate(body) is None
    assert SignedSessionCodec("other-secret", clock=clock).validate(credential) is None


def test_signed_credential_still_expires(clock):
    codec = SignedSessionCodec("top-secret", clock=clock)
    credential = codec.issue(employee())
    clock.advance(hours=8)
    assert codec.validate(credential) is None


def test_build_codec_follows_settings(monkeypatch):
    assert isinstance(build_codec(get_settings()), PlainSessionCodec)
    assert not isinstance(build_codec(get_settings()), SignedSessionCodec)

    monkeypatch.setenv("SESSION_CODEC", "signed")
    with pytest.raises(ValueError):
        build_codec(get_settings())

    monkeypatch.setenv("SESSION_SECRET", "configured-secret")
    monkeypatch.setenv("SESSION_TTL_HOURS", "2")
    codec = build_codec(get_settings())
    assert isinstance(codec, SignedSessionCodec)
    assert codec.ttl == timedelta(hours=2)
