"""Tests for the terminal client helpers and error presentation."""

import json

import httpx
import pytest

from notekeeper.client import NotesClient, filter_notes
from notekeeper.errors import GENERIC_MESSAGE, ErrorKind, NotekeeperError, user_message
from notekeeper.services.session import SessionStore, register_via_api

NOTES = [
    {"id": "1", "title": "Groceries", "content": "Milk, eggs"},
    {"id": "2", "title": "Ideas", "content": "Buy a MILKSHAKE machine"},
    {"id": "3", "title": "Travel", "content": "Pack passport"},
]


class TestFilterNotes:
    """Tests for client-side search."""

    def test_matches_title_or_content_case_insensitively(self):
        assert [n["id"] for n in filter_notes(NOTES, "milk")] == ["1", "2"]
        assert [n["id"] for n in filter_notes(NOTES, "TRAVEL")] == ["3"]

    def test_empty_term_returns_everything(self):
        assert filter_notes(NOTES, "") == NOTES
        assert filter_notes(NOTES, None) == NOTES

    def test_no_match(self):
        assert filter_notes(NOTES, "zebra") == []


class TestUserMessage:
    """Tests for presentation of classified errors."""

    @pytest.mark.parametrize(
        "kind", [ErrorKind.VALIDATION, ErrorKind.RATE_LIMITED, ErrorKind.ALREADY_EXISTS]
    )
    def test_verbatim_kinds(self, kind):
        assert user_message(kind, "Password too short") == "Password too short"

    @pytest.mark.parametrize(
        "kind", [ErrorKind.SERVER_ERROR, ErrorKind.NETWORK_ERROR, ErrorKind.STORAGE_ERROR, None]
    )
    def test_generic_kinds(self, kind):
        assert user_message(kind, "stack trace at line 3") == GENERIC_MESSAGE


class StubAPI:
    """Records requests to the notes API and replays canned responses."""

    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self.body = body or {}
        self.requests = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.body)


class TestNotesClient:
    """Tests for NotesClient."""

    @pytest.mark.asyncio
    async def test_requires_login(self, provider):
        api = StubAPI()
        client = NotesClient(SessionStore(provider), "http://api", httpx.MockTransport(api.handler))

        with pytest.raises(NotekeeperError) as exc_info:
            await client.list_notes()
        assert exc_info.value.kind is ErrorKind.UNAUTHENTICATED
        assert api.requests == []

    @pytest.mark.asyncio
    async def test_list_sends_token_and_filters(self, provider):
        store = SessionStore(provider)
        await store.sign_up("Ann", "ann@example.com", "secret123")
        api = StubAPI(body={"notes": NOTES})
        client = NotesClient(store, "http://api/", httpx.MockTransport(api.handler))

        notes = await client.list_notes("milk")

        assert [n["id"] for n in notes] == ["1", "2"]
        request = api.requests[0]
        assert str(request.url) == "http://api/notes"
        assert request.headers["authorization"] == f"Bearer {store.access_token}"

    @pytest.mark.asyncio
    async def test_create_posts_body(self, provider):
        store = SessionStore(provider)
        await store.sign_up("Ann", "ann@example.com", "secret123")
        api = StubAPI(body={"note": NOTES[0]})
        client = NotesClient(store, "http://api", httpx.MockTransport(api.handler))

        note = await client.create_note("Groceries", "Milk, eggs")

        assert note == NOTES[0]
        assert json.loads(api.requests[0].content) == {
            "title": "Groceries",
            "content": "Milk, eggs",
        }

    @pytest.mark.asyncio
    async def test_error_body_becomes_classified_error(self, provider):
        store = SessionStore(provider)
        await store.sign_up("Ann", "ann@example.com", "secret123")
        api = StubAPI(
            400,
            {"error": "Invalid or missing field: title", "code": "VALIDATION", "fields": ["title"]},
        )
        client = NotesClient(store, "http://api", httpx.MockTransport(api.handler))

        with pytest.raises(NotekeeperError) as exc_info:
            await client.update_note("1", "", "x")
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.fields == ["title"]

    @pytest.mark.asyncio
    async def test_unknown_error_body_is_server_error(self, provider):
        store = SessionStore(provider)
        await store.sign_up("Ann", "ann@example.com", "secret123")
        api = StubAPI(502, {"detail": "bad gateway"})
        client = NotesClient(store, "http://api", httpx.MockTransport(api.handler))

        with pytest.raises(NotekeeperError) as exc_info:
            await client.delete_note("1")
        assert exc_info.value.kind is ErrorKind.SERVER_ERROR


class TestRegisterViaAPI:
    """Tests for the server-side registration fallback."""

    @pytest.mark.asyncio
    async def test_success(self):
        api = StubAPI(
            body={
                "message": "Account created successfully!",
                "user": {"id": "abc", "email": "ann@example.com", "name": "Ann"},
            }
        )

        result = await register_via_api(
            "Ann", "ann@example.com", "secret123", "http://api", httpx.MockTransport(api.handler)
        )

        assert result.success
        assert result.user.email == "ann@example.com"
        assert api.requests[0].url.path == "/auth/register"

    @pytest.mark.asyncio
    async def test_classified_failure(self):
        api = StubAPI(429, {"error": "Too many registration attempts.", "code": "RATE_LIMITED"})

        result = await register_via_api(
            "Ann", "ann@example.com", "secret123", "http://api", httpx.MockTransport(api.handler)
        )

        assert not result.success
        assert result.code is ErrorKind.RATE_LIMITED
        assert result.message == "Too many registration attempts."

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def refuse(request):
            raise httpx.ConnectError("refused", request=request)

        result = await register_via_api(
            "Ann", "ann@example.com", "secret123", "http://api", httpx.MockTransport(refuse)
        )

        assert result.code is ErrorKind.NETWORK_ERROR
