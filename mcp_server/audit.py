"""
Audit logging for security-relevant events. Records go to the "mcp_server.audit" logger.
Never log secrets, authorization codes, or tokens.
"""
import logging

from fastapi import Request

EVENT_CLIENT_REGISTERED = "client_registered"
EVENT_CODE_ISSUED = "code_issued"
EVENT_AUTHORIZE_DENIED = "authorize_denied"
EVENT_TOKEN_ISSUED = "token_issued"
EVENT_TOKEN_DENIED = "token_denied"
EVENT_BEARER_REJECTED = "bearer_rejected"

OUTCOME_SUCCESS = "success"
OUTCOME_FAIL = "fail"

audit_logger = logging.getLogger("mcp_server.audit")


def get_client_ip(request: Request | None) -> str | None:
    """Client IP if available (request.client.host). Forwarding headers are not trusted."""
    if request is None or request.client is None:
        return None
    return getattr(request.client, "host", None)


def log_audit(
    event_type: str,
    *,
    client_id: str | None = None,
    ip: str | None = None,
    outcome: str = OUTCOME_SUCCESS,
) -> None:
    """Emit one audit record."""
    level = logging.INFO if outcome == OUTCOME_SUCCESS else logging.WARNING
    audit_logger.log(
        level,
        "audit event=%s client_id=%s ip=%s outcome=%s",
        event_type,
        client_id,
        ip,
        outcome,
        extra={
            "audit_event": event_type,
            "audit_client_id": client_id,
            "audit_ip": ip,
            "audit_outcome": outcome,
        },
    )
