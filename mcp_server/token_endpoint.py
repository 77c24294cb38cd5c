"""
Token endpoint (POST /oauth/token). Authorization code exchange only; no refresh tokens.
"""
from fastapi import APIRouter, Depends, Form, Request

from mcp_server.audit import get_client_ip
from mcp_server.client_auth import ClientCredentials, client_credentials
from mcp_server.dependencies import get_oauth
from mcp_server.oauth import OAuthFlowEngine

router = APIRouter()


@router.post("/oauth/token")
def token(
    request: Request,
    grant_type: str | None = Form(None),
    code: str | None = Form(None),
    redirect_uri: str | None = Form(None),
    code_verifier: str | None = Form(None),
    credentials: ClientCredentials = Depends(client_credentials),
    oauth: OAuthFlowEngine = Depends(get_oauth),
):
    """
    Errors: unsupported_grant_type (400), invalid_grant (400), invalid_client (401).
    All form fields are optional at the HTTP layer so each failure maps to its OAuth error.
    """
    return oauth.exchange_code(
        grant_type,
        code,
        credentials.client_id,
        credentials.client_secret,
        redirect_uri=redirect_uri,
        code_verifier=code_verifier,
        ip=get_client_ip(request),
    )
