"""
Credential records held in memory: registered clients, authorization codes, access tokens.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Client:
    client_id: str
    # bcrypt hash of client_secret; the plaintext is only returned at registration
    client_secret_hash: str
    redirect_uris: tuple[str, ...] = ()
    created_at: datetime = field(default_factory=_utc_now)


@dataclass(frozen=True, kw_only=True)
class ExpiringRecord:
    """Record with a hard expiry. Checked lazily on read; never swept."""

    expires_at: datetime

    def expired(self, now: datetime | None = None) -> bool:
        return self.expires_at <= (now or _utc_now())


@dataclass(frozen=True, kw_only=True)
class AuthorizationCode(ExpiringRecord):
    code: str
    client_id: str
    redirect_uri: str
    code_challenge: str | None = None
    code_challenge_method: str | None = None


@dataclass(frozen=True, kw_only=True)
class AccessToken(ExpiringRecord):
    token: str
    client_id: str
