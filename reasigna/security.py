from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from pydantic import BaseModel, ValidationError

from reasigna.config import Settings, get_settings
from reasigna.schemas import Role, User

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def to_epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


class SessionClaims(BaseModel):
    id: int
    username: str
    role: Role
    exp: int

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class SessionCodec(Protocol):
    def issue(self, user: User) -> str:
        ...

    def validate(self, credential: str) -> SessionClaims | None:
        ...


class PlainSessionCodec:
    """Base64 encoded JSON claims with an expiry and no signature.

    Anyone holding a credential can decode and rewrite it; use
    ``SignedSessionCodec`` where that matters.
    """

    def __init__(self, ttl: timedelta = timedelta(hours=8), clock: Clock = utcnow):
        self.ttl = ttl
        self.clock = clock

    def claims_for(self, user: User) -> SessionClaims:
        return SessionClaims(
            id=user.id,
            username=user.username,
            role=user.role,
            exp=to_epoch_ms(self.clock() + self.ttl),
        )

    def issue(self, user: User) -> str:
        return self.encode(self.claims_for(user))

    def encode(self, claims: SessionClaims) -> str:
        raw = json.dumps(claims.model_dump(), separators=(",", ":")).encode("utf-8")
        return base64.b64encode(raw).decode("ascii")

    def decode(self, credential: str) -> SessionClaims | None:
        try:
            raw = base64.b64decode(credential.encode("ascii"), validate=True)
            return SessionClaims.model_validate(json.loads(raw.decode("utf-8")))
        except (binascii.Error, UnicodeError, ValueError, ValidationError):
            return None

    def validate(self, credential: str) -> SessionClaims | None:
        claims = self.decode(credential)
        if claims is None:
            logger.debug("Rejected undecodable credential")
            return None
        if to_epoch_ms(self.clock()) >= claims.exp:
            logger.debug("Rejected expired credential for user %s", claims.id)
            return None
        return claims


class SignedSessionCodec(PlainSessionCodec):
    """Same claims as the plain codec, followed by an HMAC-SHA256 signature."""

    def __init__(self, secret: str, ttl: timedelta = timedelta(hours=8), clock: Clock = utcnow):
        if not secret:
            raise ValueError("SESSION_SECRET is required for signed session credentials")
        super().__init__(ttl=ttl, clock=clock)
        self._key = secret.encode("utf-8")

    def _signature(self, body: str) -> str:
        digest = hmac.new(self._key, body.encode("utf-8"), hashlib.sha256).digest()
        return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")

    def encode(self, claims: SessionClaims) -> str:
        body = super().encode(claims)
        return f"{body}.{self._signature(body)}"

    def decode(self, credential: str) -> SessionClaims | None:
        body, _, signature = credential.rpartition(".")
        if not body or not hmac.compare_digest(signature.encode("utf-8"), self._signature(body).encode("ascii")):
            return None
        return super().decode(body)


def build_codec(settings: Settings | None = None) -> SessionCodec:
    settings = settings or get_settings()
    ttl = timedelta(hours=settings.session_ttl_hours)
    if settings.session_codec == "signed":
        return SignedSessionCodec(settings.session_secret, ttl=ttl)
    if settings.session_codec != "plain":
        raise ValueError(f"Unknown session codec: {settings.session_codec}")
    return PlainSessionCodec(ttl=ttl)
