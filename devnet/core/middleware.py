"""
Request body limit for JSON requests.

A declared Content-Length over the limit is refused before the app runs.
Bodies without one (chunked uploads) are counted as they are received, and
the read that crosses the limit fails with the same 413.
"""

import logging

from fastapi import HTTPException, status
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

logger = logging.getLogger(__name__)

TOO_LARGE = "Request body too large"


class JSONBodyLimitMiddleware:
    def __init__(self, app: ASGIApp, max_bytes: int):
        self.app = app
        self.max_bytes = max_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return
        headers = Headers(scope=scope)
        if not headers.get("content-type", "").startswith("application/json"):
            await self.app(scope, receive, send)
            return

        length = headers.get("content-length")
        if length and length.isdigit() and int(length) > self.max_bytes:
            logger.warning(f"Rejected {length} byte JSON body on {scope['path']}")
            response = JSONResponse(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, content={"detail": TOO_LARGE}
            )
            await response(scope, receive, send)
            return

        received = 0

        async def limited_receive() -> Message:
            nonlocal received
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > self.max_bytes:
                    logger.warning(f"Rejected streamed JSON body over {self.max_bytes} bytes on {scope['path']}")
                    raise HTTPException(status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE, detail=TOO_LARGE)
            return message

        await self.app(scope, limited_receive, send)
