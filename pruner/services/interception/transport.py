# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
In-process interception for httpx-based hosts.

Wrap the transport of the client that talks to the model provider:

    transport = PruningTransport(layer, httpx.AsyncHTTPTransport())
    client = httpx.AsyncClient(transport=transport)

JSON request bodies are passed through :class:`InterceptionLayer`; the
session comes from the ``x-pruner-session`` header when present. Anything
that is not a JSON body is forwarded untouched.
"""

import json
import logging
from typing import Optional

import httpx

from pruner.services.interception.handler import InterceptionLayer

logger = logging.getLogger(__name__)

SESSION_HEADER = "x-pruner-session"


class PruningTransport(httpx.AsyncBaseTransport):
    """Async transport that rewrites outbound model requests."""

    def __init__(
        self,
        layer: InterceptionLayer,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.layer = layer
        self.transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        session_id = request.headers.get(SESSION_HEADER)
        if request.method == "POST" and "json" in request.headers.get("content-type", ""):
            request = await self._rewrite(request, session_id)
        elif SESSION_HEADER in request.headers:
            request = self._rebuild(request, request.content)
        return await self.transport.handle_async_request(request)

    async def _rewrite(self, request: httpx.Request, session_id: Optional[str]) -> httpx.Request:
        raw = await request.aread()
        try:
            body = json.loads(raw)
        except ValueError:
            return self._rebuild(request, raw)
        if not isinstance(body, dict):
            return self._rebuild(request, raw)

        modified, new_body = await self.layer.process(session_id, body)
        if not modified:
            return self._rebuild(request, raw)
        content = json.dumps(new_body, ensure_ascii=False).encode("utf-8")
        logger.debug("Rewrote request to %s (%d -> %d bytes)", request.url, len(raw), len(content))
        return self._rebuild(request, content)

    def _rebuild(self, request: httpx.Request, content: bytes) -> httpx.Request:
        headers = httpx.Headers(request.headers)
        headers.pop(SESSION_HEADER, None)
        headers.pop("content-length", None)
        return httpx.Request(
            request.method,
            request.url,
            headers=headers,
            content=content,
            extensions=request.extensions,
        )

    async def aclose(self) -> None:
        await self.transport.aclose()
