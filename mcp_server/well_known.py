"""
Well-known endpoint: OAuth 2.0 authorization server metadata (RFC 8414).
"""
from fastapi import APIRouter, Depends

from mcp_server.dependencies import get_oauth
from mcp_server.oauth import OAuthFlowEngine

router = APIRouter()


@router.get("/.well-known/oauth-authorization-server")
def oauth_authorization_server(oauth: OAuthFlowEngine = Depends(get_oauth)):
    """Discovery document. PKCE S256 is advertised and enforced for codes issued with a challenge."""
    return oauth.metadata()
