"""
Authorization endpoint (GET /oauth/authorize). No login or consent screen: a known
client_id is auto-approved and redirected back with code (and state, if given).
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from mcp_server.audit import get_client_ip
from mcp_server.dependencies import get_oauth
from mcp_server.oauth import OAuthFlowEngine

router = APIRouter()


@router.get("/oauth/authorize")
def authorize(
    request: Request,
    client_id: str | None = None,
    redirect_uri: str | None = None,
    response_type: str | None = None,
    state: str | None = None,
    code_challenge: str | None = None,
    code_challenge_method: str | None = None,
    oauth: OAuthFlowEngine = Depends(get_oauth),
):
    """
    Unknown client_id or missing redirect_uri -> 400, never a redirect.
    On success: 302 to redirect_uri?code=...&state=...
    """
    location = oauth.authorize(
        client_id,
        redirect_uri,
        response_type=response_type,
        state=state,
        code_challenge=code_challenge,
        code_challenge_method=code_challenge_method,
        ip=get_client_ip(request),
    )
    return RedirectResponse(url=location, status_code=302)
