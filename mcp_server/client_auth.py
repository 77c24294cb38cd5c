"""
Client authentication at the token endpoint (RFC 6749 §2.3.1): client_secret_post or
client_secret_basic. Secrets are stored as bcrypt hashes only.
"""
import base64
import binascii
import logging
from dataclasses import dataclass
from urllib.parse import unquote

import bcrypt
from fastapi import Form, Request
from fastapi.security.utils import get_authorization_scheme_param

from mcp_server.models import Client
from mcp_server.stores import MemoryStore

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _secret_bytes(secret: str) -> bytes:
    return secret.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_secret(secret: str) -> str:
    return bcrypt.hashpw(_secret_bytes(secret), bcrypt.gensalt()).decode("utf-8")


def verify_secret(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(_secret_bytes(plain), hashed.encode("utf-8"))


@dataclass(frozen=True)
class ClientCredentials:
    client_id: str | None = None
    client_secret: str | None = None

    @property
    def complete(self) -> bool:
        return bool(self.client_id) and self.client_secret is not None

    @classmethod
    def from_authorization(cls, authorization: str | None) -> "ClientCredentials":
        """Decode client_secret_basic; id and secret are form-urlencoded inside the base64 pair."""
        scheme, param = get_authorization_scheme_param(authorization)
        if scheme.lower() != "basic" or not param:
            return cls()
        try:
            pair = base64.b64decode(param.strip(), validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError):
            logger.debug("Ignoring malformed Basic credentials")
            return cls()
        client_id, sep, client_secret = pair.partition(":")
        if not sep:
            return cls()
        return cls(unquote(client_id), unquote(client_secret))


def client_credentials(
    request: Request,
    client_id: str | None = Form(None),
    client_secret: str | None = Form(None),
) -> ClientCredentials:
    """
    Dependency for the token endpoint. A complete form pair wins over Basic;
    a form client_id alone is used when Basic carries nothing usable.
    """
    posted = ClientCredentials(client_id.strip() if client_id else None, client_secret)
    if posted.complete:
        return posted
    basic = ClientCredentials.from_authorization(request.headers.get("Authorization"))
    if basic.complete:
        return basic
    return posted


def authenticate_client(
    clients: MemoryStore[Client], client_id: str | None, client_secret: str | None
) -> Client | None:
    """Load client by client_id and verify client_secret against the stored hash."""
    if not client_id or not client_secret:
        return None
    client = clients.get(client_id)
    if client is None:
        return None
    if not verify_secret(client_secret, client.client_secret_hash):
        return None
    return client
