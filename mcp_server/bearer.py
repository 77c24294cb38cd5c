"""
Bearer token check for the MCP endpoint. Tokens are opaque and looked up in the token store.
"""
import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from fastapi.security.utils import get_authorization_scheme_param

from mcp_server.audit import EVENT_BEARER_REJECTED, OUTCOME_FAIL, get_client_ip, log_audit
from mcp_server.dependencies import get_require_auth, get_stores
from mcp_server.models import AccessToken
from mcp_server.stores import CredentialStores

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


def _unauthorized(description: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"error": "invalid_token", "error_description": description},
        headers={"WWW-Authenticate": "Bearer"},
    )


def validate_bearer_token(stores: CredentialStores, token: str) -> AccessToken | None:
    """Return the AccessToken if it exists and has not expired."""
    return stores.tokens.get(token)


def require_bearer(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    stores: Annotated[CredentialStores, Depends(get_stores)],
    require_auth: Annotated[bool, Depends(get_require_auth)],
) -> AccessToken | None:
    """
    Dependency: a presented Bearer token must be valid, else 401.
    No Bearer header is allowed through unless auth is required by configuration.
    A Bearer header with an empty token counts as presented and is rejected.
    """
    if credentials is None:
        scheme, _ = get_authorization_scheme_param(request.headers.get("Authorization"))
        if scheme.strip().lower() == "bearer":
            log_audit(EVENT_BEARER_REJECTED, ip=get_client_ip(request), outcome=OUTCOME_FAIL)
            raise _unauthorized("Invalid or expired token")
        if require_auth:
            log_audit(EVENT_BEARER_REJECTED, ip=get_client_ip(request), outcome=OUTCOME_FAIL)
            raise _unauthorized("Authorization header missing")
        return None
    access_token = validate_bearer_token(stores, credentials.credentials)
    if access_token is None:
        log_audit(EVENT_BEARER_REJECTED, ip=get_client_ip(request), outcome=OUTCOME_FAIL)
        raise _unauthorized("Invalid or expired token")
    return access_token
