"""HTTP client for the notes API, used by the terminal front end."""

import logging
from typing import Any

import httpx

from notekeeper.config import get_settings
from notekeeper.errors import ErrorKind, NotekeeperError
from notekeeper.services.session import SessionStore

logger = logging.getLogger(__name__)


def filter_notes(notes: list[dict[str, Any]], term: str | None) -> list[dict[str, Any]]:
    """Case-insensitive substring match on title or content of fetched notes."""
    if not term:
        return list(notes)
    needle = term.lower()
    return [
        note
        for note in notes
        if needle in (note.get("title") or "").lower()
        or needle in (note.get("content") or "").lower()
    ]


class NotesClient:
    """Calls the /notes routes with the session store's bearer token."""

    def __init__(
        self,
        store: SessionStore,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.store = store
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = settings.provider_timeout
        self._transport = transport

    async def _request(self, method: str, path: str, json: dict | None = None) -> dict:
        token = self.store.access_token
        if not token:
            raise NotekeeperError(ErrorKind.UNAUTHENTICATED, "Please log in first")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.request(
                    method,
                    f"{self.base_url}{path}",
                    json=json,
                    headers={"Authorization": f"Bearer {token}"},
                )
        except httpx.TransportError as e:
            logger.error(f"Notes API unreachable: {e}")
            raise NotekeeperError(ErrorKind.NETWORK_ERROR) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            try:
                kind = ErrorKind(body.get("code"))
            except ValueError:
                kind = ErrorKind.SERVER_ERROR
            raise NotekeeperError(kind, body.get("error"), fields=body.get("fields"))
        return body

    async def list_notes(self, term: str | None = None) -> list[dict[str, Any]]:
        """Fetch every note, then filter locally."""
        body = await self._request("GET", "/notes")
        return filter_notes(body.get("notes", []), term)

    async def get_note(self, note_id: str) -> dict[str, Any]:
        return (await self._request("GET", f"/notes/{note_id}"))["note"]

    async def create_note(self, title: str, content: str) -> dict[str, Any]:
        body = await self._request("POST", "/notes", {"title": title, "content": content})
        return body["note"]

    async def update_note(self, note_id: str, title: str, content: str) -> dict[str, Any]:
        body = await self._request(
            "PUT", f"/notes/{note_id}", {"title": title, "content": content}
        )
        return body["note"]

    async def delete_note(self, note_id: str) -> str:
        return (await self._request("DELETE", f"/notes/{note_id}"))["message"]
