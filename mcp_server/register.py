"""
Dynamic client registration (POST /oauth/register). RFC 7591, minimal: redirect_uris only.
"""
import logging

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from mcp_server.audit import get_client_ip
from mcp_server.dependencies import get_oauth
from mcp_server.oauth import OAuthFlowEngine

logger = logging.getLogger(__name__)
router = APIRouter()


class RegistrationRequest(BaseModel):
    # Accepted as-is: no URI validation, no de-duplication
    redirect_uris: list[str] = []


@router.post("/oauth/register")
def register(
    request: Request,
    body: RegistrationRequest,
    oauth: OAuthFlowEngine = Depends(get_oauth),
):
    """Create a confidential client. The secret is returned once and only its hash is kept."""
    result = oauth.register(body.redirect_uris, ip=get_client_ip(request))
    logger.info("Registered client %s with %d redirect URI(s)", result["client_id"], len(body.redirect_uris))
    return result
