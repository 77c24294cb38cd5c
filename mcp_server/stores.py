"""
In-memory credential stores (clients, authorization codes, access tokens).
Each store is a dict guarded by its own lock. Expiry is lazy: a stale record reads as
absent but stays in the dict until deleted or overwritten. Nothing survives a restart.
"""
import secrets
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

from mcp_server.models import AccessToken, AuthorizationCode, Client, ExpiringRecord

T = TypeVar("T")

# Random bytes per identifier (token_urlsafe output is ~1.3 chars per byte)
CLIENT_ID_BYTES = 24
CLIENT_SECRET_BYTES = 32
CODE_BYTES = 32
ACCESS_TOKEN_BYTES = 48


def generate_token(nbytes: int) -> str:
    """Opaque, URL-safe identifier from the OS CSPRNG."""
    return secrets.token_urlsafe(nbytes)


class MemoryStore(Generic[T]):
    """Keyed store with atomic put/get/delete."""

    def __init__(self) -> None:
        self._records: dict[str, T] = {}
        self._lock = threading.Lock()

    def put(self, key: str, record: T) -> None:
        with self._lock:
            self._records[key] = record

    def get(self, key: str, now: datetime | None = None) -> T | None:
        """Return the record, or None if unknown or expired. Expired records are not removed."""
        if not key:
            return None
        with self._lock:
            record = self._records.get(key)
        if record is None:
            return None
        if isinstance(record, ExpiringRecord) and record.expired(now):
            return None
        return record

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._records.pop(key, None) is not None

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._records

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)


@dataclass
class CredentialStores:
    """The three stores shared by the OAuth endpoints and the bearer gate."""

    clients: MemoryStore[Client] = field(default_factory=MemoryStore)
    codes: MemoryStore[AuthorizationCode] = field(default_factory=MemoryStore)
    tokens: MemoryStore[AccessToken] = field(default_factory=MemoryStore)
