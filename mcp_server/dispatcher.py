"""
JSON-RPC 2.0 dispatcher. Routes a decoded message to a handler from a read-only method
table, correlates the response by id and builds error envelopes. Batch-aware.
"""
import logging
from collections.abc import Callable, Mapping
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

JSONRPC_VERSION = "2.0"

PARSE_ERROR = -32700
METHOD_NOT_FOUND = -32601
INTERNAL_ERROR = -32603

MethodHandler = Callable[[Any], Any]


class HandlerError(Exception):
    """Raised by a method handler; reported as an internal error with this message."""


def _error(id_: Any, code: int, message: str) -> dict:
    return {"jsonrpc": JSONRPC_VERSION, "id": id_, "error": {"code": code, "message": message}}


def parse_error() -> dict:
    """Top-level parse error. Carries no id."""
    return {"jsonrpc": JSONRPC_VERSION, "error": {"code": PARSE_ERROR, "message": "Parse error"}}


def is_envelope(message: Any) -> bool:
    return isinstance(message, dict) and isinstance(message.get("method"), str)


class ProtocolDispatcher:
    def __init__(self, methods: Mapping[str, MethodHandler]):
        # Built once; request handling never mutates it
        self.methods = MappingProxyType(dict(methods))

    def dispatch(self, message: Any) -> dict | None:
        """
        Handle one message. Returns the response, or None for a notification
        (a message without an "id" key), which is never answered, even on failure.
        """
        if not is_envelope(message):
            return parse_error()

        method = message["method"]
        has_id = "id" in message
        id_ = message.get("id")

        handler = self.methods.get(method)
        if handler is None:
            logger.debug("Method not found: %s", method)
            if not has_id:
                return None
            return _error(id_, METHOD_NOT_FOUND, f"Method not found: {method}")

        try:
            result = handler(message.get("params"))
        except HandlerError as e:
            logger.info("Handler for %s failed: %s", method, e)
            return _error(id_, INTERNAL_ERROR, str(e)) if has_id else None
        except Exception as e:
            logger.exception("Unexpected error in handler for %s", method)
            return _error(id_, INTERNAL_ERROR, str(e) or type(e).__name__) if has_id else None

        if not has_id:
            return None
        return {"jsonrpc": JSONRPC_VERSION, "id": id_, "result": result}

    def dispatch_batch(self, messages: list) -> list[dict]:
        """Responses in input order; notifications contribute nothing, so the list may be empty."""
        responses = []
        for message in messages:
            response = self.dispatch(message)
            if response is not None:
                responses.append(response)
        return responses

    def handle(self, payload: Any) -> dict | list[dict] | None:
        """Dispatch a decoded body: an array is a batch, anything else a single message."""
        if isinstance(payload, list):
            return self.dispatch_batch(payload)
        return self.dispatch(payload)
