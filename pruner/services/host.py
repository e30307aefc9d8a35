# Copyright (c) 2026 Heureum AI. All rights reserved.

"""
Host application session API.

The pruner never owns the conversation: it reads the transcript and session
metadata from the host and posts notifications back as messages flagged
``ignored`` so they are shown to the user but never sent to the model.
"""

import logging
from typing import Any, Dict, List, Optional, Protocol

import httpx

from pruner.schemas.transcript import TranscriptMessage, parse_transcript
from pruner.services.errors import HostError

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE_LIMIT = 500


class HostClient(Protocol):
    """Collaborator contract for the host session API."""

    async def get_messages(
        self, session_id: str, limit: int = DEFAULT_MESSAGE_LIMIT
    ) -> List[TranscriptMessage]: ...

    async def get_session(self, session_id: str) -> Dict[str, Any]: ...

    async def send_guidance_message(
        self, session_id: str, text: str, agent: Optional[str] = None
    ) -> None: ...


class HttpHostClient:
    """:class:`HostClient` over the host's REST API.

    Endpoints:
        ``GET  /session/{id}/message?limit=N``  transcript
        ``GET  /session/{id}``                  session metadata
        ``POST /session/{id}/message``          ignored, no-reply message
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            async with self._client() as client:
                resp = await client.request(method, path, **kwargs)
                resp.raise_for_status()
                if not resp.content:
                    return None
                return resp.json()
        except httpx.HTTPStatusError as e:
            raise HostError(
                f"{method} {path} failed with status {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise HostError(f"{method} {path} failed: {e}") from e

    async def get_messages(
        self, session_id: str, limit: int = DEFAULT_MESSAGE_LIMIT
    ) -> List[TranscriptMessage]:
        data = await self._request(
            "GET", f"/session/{session_id}/message", params={"limit": limit}
        )
        if isinstance(data, dict) and isinstance(data.get("data"), list):
            data = data["data"]
        return parse_transcript(data)

    async def get_session(self, session_id: str) -> Dict[str, Any]:
        data = await self._request("GET", f"/session/{session_id}")
        return data if isinstance(data, dict) else {}

    async def send_guidance_message(
        self, session_id: str, text: str, agent: Optional[str] = None
    ) -> None:
        """Post a user-visible message the model will not see.

        Raises:
            HostError: If the host rejects or cannot be reached.
        """
        payload: Dict[str, Any] = {
            "noReply": True,
            "parts": [{"type": "text", "text": text, "ignored": True}],
        }
        if agent:
            payload["agent"] = agent
        await self._request("POST", f"/session/{session_id}/message", json=payload)
        logger.debug("Sent ignored message to session %s (%d chars)", session_id, len(text))
