"""
Streamable HTTP transport. The request Content-Type picks the encoding:
application/json is one document (object or batch array) in, one document out;
application/jsonl and application/x-ndjson are one message per line in, one response per line out,
written as each line is handled.
"""
import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from dataclasses import dataclass
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from starlette.requests import ClientDisconnect
from starlette.types import Receive, Scope, Send

from mcp_server.dispatcher import ProtocolDispatcher, parse_error

logger = logging.getLogger(__name__)

JSON_MEDIA_TYPE = "application/json"
STREAM_MEDIA_TYPES = ("application/jsonl", "application/x-ndjson")
# Longest NDJSON line accepted; longer lines are dropped
MAX_LINE_BYTES = 1024 * 1024


def media_type(content_type: str | None) -> str:
    """'application/json; charset=utf-8' -> 'application/json'."""
    return (content_type or "").split(";", 1)[0].strip().lower()


@dataclass(frozen=True)
class Decoded:
    payload: Any


@dataclass(frozen=True)
class DecodeFailure:
    line_number: int
    reason: str


def decode_line(line: bytes, line_number: int) -> Decoded | DecodeFailure:
    """Parse one JSON document (an NDJSON line or a whole body). Failures are returned, not raised."""
    try:
        payload = json.loads(line)
    except (ValueError, UnicodeDecodeError) as e:
        return DecodeFailure(line_number, f"invalid JSON: {e}")
    except RecursionError:
        return DecodeFailure(line_number, "invalid JSON: nested too deeply")
    if not isinstance(payload, (dict, list)):
        return DecodeFailure(line_number, "not a JSON-RPC message or batch")
    return Decoded(payload)


async def iter_lines(
    chunks: AsyncIterable[bytes], max_line_bytes: int = MAX_LINE_BYTES
) -> AsyncIterator[bytes]:
    """
    Split a byte stream on newlines across chunk boundaries; blank lines are skipped.
    A line longer than max_line_bytes is dropped up to its terminating newline.
    """
    buffer = bytearray()
    skipping = False
    async for chunk in chunks:
        if not chunk:
            continue
        # Only the new bytes can hold a newline not seen yet
        scan = len(buffer)
        buffer += chunk
        start = 0
        end = buffer.find(b"\n", scan)
        while end >= 0:
            if skipping:
                skipping = False
            else:
                line = bytes(buffer[start:end]).strip()
                if line:
                    yield line
            start = end + 1
            end = buffer.find(b"\n", start)
        del buffer[:start]
        if len(buffer) > max_line_bytes:
            logger.warning("Dropping line longer than %d bytes", max_line_bytes)
            buffer.clear()
            skipping = True
    tail = bytes(buffer).strip()
    if tail and not skipping:
        yield tail


class LineStreamingResponse(StreamingResponse):
    """
    Streams without a concurrent disconnect listener: the body iterator reads the request
    stream itself, and a second reader on receive() would swallow request chunks.
    """

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        await self.stream_response(send)
        if self.background is not None:
            await self.background()


async def _request_chunks(request: Request) -> AsyncIterator[bytes]:
    try:
        async for chunk in request.stream():
            yield chunk
    except ClientDisconnect:
        logger.info("Client disconnected before the request stream ended")


async def stream_responses(
    chunks: AsyncIterable[bytes], dispatcher: ProtocolDispatcher
) -> AsyncIterator[bytes]:
    """
    Decode, dispatch and encode line by line, in arrival order. A bad line is logged and
    dropped; it does not end the stream.
    """
    line_number = 0
    async for line in iter_lines(chunks):
        line_number += 1
        decoded = decode_line(line, line_number)
        if isinstance(decoded, DecodeFailure):
            logger.warning("Dropping line %d: %s", decoded.line_number, decoded.reason)
            continue
        response = dispatcher.handle(decoded.payload)
        if response is None or response == []:
            continue
        yield (json.dumps(response) + "\n").encode("utf-8")


async def handle_json(request: Request, dispatcher: ProtocolDispatcher) -> Response:
    decoded = decode_line(await request.body(), 1)
    if isinstance(decoded, DecodeFailure):
        logger.info("Rejected request body: %s", decoded.reason)
        return JSONResponse(parse_error())

    response = dispatcher.handle(decoded.payload)
    if response is None:
        # Single notification: nothing to answer
        return Response(status_code=202)
    return JSONResponse(response)


async def handle_protocol_request(request: Request, dispatcher: ProtocolDispatcher) -> Response:
    """Pick the codec from Content-Type; any other type is rejected before the body is read."""
    kind = media_type(request.headers.get("content-type"))
    if kind == JSON_MEDIA_TYPE:
        return await handle_json(request, dispatcher)
    if kind in STREAM_MEDIA_TYPES:
        return LineStreamingResponse(stream_responses(_request_chunks(request), dispatcher), media_type=kind)
    logger.info("Unsupported content type: %r", kind)
    return PlainTextResponse("Unsupported content type", status_code=400)
