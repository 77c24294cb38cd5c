"""
OAuth 2.0 authorization-code flow: metadata discovery, dynamic client registration,
code issuance and code-for-token exchange. State lives in the injected CredentialStores.
"""
import hashlib
import logging
import secrets
from base64 import urlsafe_b64encode
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from mcp_server.audit import (
    EVENT_AUTHORIZE_DENIED,
    EVENT_CLIENT_REGISTERED,
    EVENT_CODE_ISSUED,
    EVENT_TOKEN_DENIED,
    EVENT_TOKEN_ISSUED,
    OUTCOME_FAIL,
    OUTCOME_SUCCESS,
    log_audit,
)
from mcp_server.client_auth import authenticate_client, hash_secret
from mcp_server.models import AccessToken, AuthorizationCode, Client
from mcp_server.stores import (
    ACCESS_TOKEN_BYTES,
    CLIENT_ID_BYTES,
    CLIENT_SECRET_BYTES,
    CODE_BYTES,
    CredentialStores,
    generate_token,
)

logger = logging.getLogger(__name__)

GRANT_AUTHORIZATION_CODE = "authorization_code"
PKCE_METHOD_S256 = "S256"


class OAuthError(Exception):
    """OAuth failure rendered as {"error": ..., "error_description": ...} with status_code."""

    def __init__(self, error: str, status_code: int = 400, description: str | None = None):
        super().__init__(description or error)
        self.error = error
        self.status_code = status_code
        self.description = description

    def to_dict(self) -> dict:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return body


def _pkce_verify(code_verifier: str, code_challenge: str, method: str | None) -> bool:
    """Verify PKCE: S256 only; SHA256(verifier) base64url == challenge."""
    if method != PKCE_METHOD_S256:
        return False
    try:
        verifier_bytes = code_verifier.encode("ascii")
        challenge_bytes = code_challenge.encode("ascii")
    except UnicodeEncodeError:
        # RFC 7636 verifiers and S256 challenges are ASCII only
        return False
    computed = urlsafe_b64encode(hashlib.sha256(verifier_bytes).digest()).rstrip(b"=")
    return secrets.compare_digest(computed, challenge_bytes)


def _with_query_params(url: str, params: dict[str, str]) -> str:
    """Set params on url's query string, keeping any existing parameters."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


class OAuthFlowEngine:
    def __init__(
        self,
        stores: CredentialStores,
        issuer: str,
        code_ttl_seconds: int,
        access_token_expires: int,
    ):
        self.stores = stores
        self.issuer = issuer.rstrip("/")
        self.code_ttl = timedelta(seconds=code_ttl_seconds)
        self.access_token_expires = access_token_expires

    def metadata(self) -> dict:
        """RFC 8414 authorization server metadata."""
        return {
            "issuer": self.issuer,
            "authorization_endpoint": f"{self.issuer}/oauth/authorize",
            "token_endpoint": f"{self.issuer}/oauth/token",
            "registration_endpoint": f"{self.issuer}/oauth/register",
            "response_types_supported": ["code"],
            "grant_types_supported": [GRANT_AUTHORIZATION_CODE],
            "code_challenge_methods_supported": [PKCE_METHOD_S256],
            "token_endpoint_auth_methods_supported": ["client_secret_post", "client_secret_basic"],
        }

    def register(self, redirect_uris: list[str] | None, *, ip: str | None = None) -> dict:
        """RFC 7591 dynamic registration. Redirect URIs are stored as given."""
        uris = list(redirect_uris or [])
        client_id = generate_token(CLIENT_ID_BYTES)
        client_secret = generate_token(CLIENT_SECRET_BYTES)
        self.stores.clients.put(
            client_id,
            Client(
                client_id=client_id,
                client_secret_hash=hash_secret(client_secret),
                redirect_uris=tuple(uris),
            ),
        )
        log_audit(EVENT_CLIENT_REGISTERED, client_id=client_id, ip=ip, outcome=OUTCOME_SUCCESS)
        return {
            "client_id": client_id,
            "client_secret": client_secret,
            "redirect_uris": uris,
        }

    def authorize(
        self,
        client_id: str | None,
        redirect_uri: str | None,
        *,
        response_type: str | None = None,
        state: str | None = None,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
        ip: str | None = None,
    ) -> str:
        """
        Issue an authorization code (auto-approved) and return the redirect URL
        redirect_uri?code=...&state=... . state is echoed verbatim and never stored.
        """
        if not client_id or self.stores.clients.get(client_id) is None:
            log_audit(EVENT_AUTHORIZE_DENIED, client_id=client_id, ip=ip, outcome=OUTCOME_FAIL)
            raise OAuthError("invalid_client", 400, "Invalid client")
        if not redirect_uri:
            raise OAuthError("invalid_request", 400, "redirect_uri is required")
        if response_type is not None and response_type != "code":
            raise OAuthError("unsupported_response_type", 400, "response_type must be 'code'")

        if code_challenge:
            code_challenge_method = code_challenge_method or PKCE_METHOD_S256
            if code_challenge_method != PKCE_METHOD_S256:
                raise OAuthError("invalid_request", 400, "code_challenge_method must be S256")
        else:
            code_challenge_method = None

        code = generate_token(CODE_BYTES)
        self.stores.codes.put(
            code,
            AuthorizationCode(
                code=code,
                client_id=client_id,
                redirect_uri=redirect_uri,
                code_challenge=code_challenge or None,
                code_challenge_method=code_challenge_method,
                expires_at=datetime.now(timezone.utc) + self.code_ttl,
            ),
        )
        log_audit(EVENT_CODE_ISSUED, client_id=client_id, ip=ip, outcome=OUTCOME_SUCCESS)

        params = {"code": code}
        if state:
            params["state"] = state
        return _with_query_params(redirect_uri, params)

    def exchange_code(
        self,
        grant_type: str | None,
        code: str | None,
        client_id: str | None,
        client_secret: str | None,
        *,
        redirect_uri: str | None = None,
        code_verifier: str | None = None,
        ip: str | None = None,
    ) -> dict:
        """
        authorization_code grant. The code must exist, be unexpired and bound to client_id
        (else invalid_grant); the client secret must match (else invalid_client).
        On success the code is deleted and a Bearer access token is minted.
        """
        if grant_type != GRANT_AUTHORIZATION_CODE:
            raise OAuthError(
                "unsupported_grant_type", 400, "Only authorization_code is supported"
            )

        auth_code = self.stores.codes.get(code) if code else None
        if auth_code is None:
            self._deny(client_id, ip)
            raise OAuthError("invalid_grant", 400, "Invalid or expired authorization code")
        if auth_code.client_id != client_id:
            self._deny(client_id, ip)
            raise OAuthError("invalid_grant", 400, "Client mismatch")
        if redirect_uri is not None and redirect_uri != auth_code.redirect_uri:
            self._deny(client_id, ip)
            raise OAuthError("invalid_grant", 400, "redirect_uri mismatch")
        if auth_code.code_challenge:
            if not code_verifier or not _pkce_verify(
                code_verifier, auth_code.code_challenge, auth_code.code_challenge_method
            ):
                self._deny(client_id, ip)
                raise OAuthError("invalid_grant", 400, "PKCE verification failed")

        if authenticate_client(self.stores.clients, client_id, client_secret) is None:
            self._deny(client_id, ip)
            raise OAuthError("invalid_client", 401, "Invalid client credentials")

        # Single use. Deleting the code and storing the token are separate steps.
        if not self.stores.codes.delete(auth_code.code):
            self._deny(client_id, ip)
            raise OAuthError("invalid_grant", 400, "Authorization code already used")

        token = generate_token(ACCESS_TOKEN_BYTES)
        self.stores.tokens.put(
            token,
            AccessToken(
                token=token,
                client_id=auth_code.client_id,
                expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.access_token_expires),
            ),
        )
        log_audit(EVENT_TOKEN_ISSUED, client_id=client_id, ip=ip, outcome=OUTCOME_SUCCESS)
        logger.info("authorization_code grant: access token issued for client_id=%s", client_id)
        return {
            "access_token": token,
            "token_type": "Bearer",
            "expires_in": self.access_token_expires,
        }

    def _deny(self, client_id: str | None, ip: str | None) -> None:
        log_audit(EVENT_TOKEN_DENIED, client_id=client_id, ip=ip, outcome=OUTCOME_FAIL)
