"""Tests for the HTTP API."""

import json
import uuid

import pytest
from fakes import EDGAR_MARKOV_ID, UnavailableOracle
from httpx import ASGITransport, AsyncClient

from decknexus.api.dependencies import get_card_database, get_deck_builder, get_resolver
from decknexus.config import settings
from decknexus.main import app
from decknexus.services.card_pool import CardPoolResolver
from decknexus.services.deck_builder import DeckBuilder
from decknexus.services.oracle import OracleSelection


def parse_sse(body: str) -> list[dict]:
    return [json.loads(chunk[len("data: ") :]) for chunk in body.split("\n\n") if chunk.startswith("data: ")]


@pytest.fixture
async def client(card_database, fake_clock):
    """Async test client wired to the fake card database and a dead oracle."""
    resolver = CardPoolResolver(card_database, limit=20_000, clock=fake_clock)

    async def select(requested):
        return OracleSelection(UnavailableOracle())

    builder = DeckBuilder(resolver, select, oracle_timeout=1)

    app.dependency_overrides[get_card_database] = lambda: card_database
    app.dependency_overrides[get_resolver] = lambda: resolver
    app.dependency_overrides[get_deck_builder] = lambda: builder

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


class TestHealthEndpoint:
    async def test_health_returns_healthy(self, client: AsyncClient) -> None:
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestBuildEndpoint:
    async def test_streams_events_until_complete(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/deckbuilder/build",
            json={"commanderId": EDGAR_MARKOV_ID, "model": "local", "options": {"powerLevel": 6}},
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = parse_sse(response.text)
        assert events[0]["type"] == "connected"
        assert events[-1]["type"] == "complete"
        assert events[-1]["result"]["totalCards"] == 100

    async def test_invalid_commander_id_rejected(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/deckbuilder/build", json={"commanderId": "edgar"})

        assert response.status_code == 422

    async def test_invalid_power_level_rejected(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/deckbuilder/build",
            json={"commanderId": EDGAR_MARKOV_ID, "options": {"powerLevel": 11}},
        )

        assert response.status_code == 422

    async def test_failed_build_ends_with_error_event(self, client: AsyncClient) -> None:
        response = await client.post(
            "/api/v1/deckbuilder/build",
            json={"commanderId": str(uuid.uuid4()), "model": "local"},
        )

        events = parse_sse(response.text)
        assert [e["type"] for e in events][-1] == "error"

    async def test_models(self, client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(settings, "anthropic_api_key", "")

        response = await client.get("/api/v1/deckbuilder/models")

        assert response.json() == {"providers": ["local"], "default": settings.default_provider}


class TestCardEndpoints:
    async def test_pool_count(self, client: AsyncClient, card_database) -> None:
        response = await client.get(f"/api/v1/cards/pool/{EDGAR_MARKOV_ID}")

        assert response.status_code == 200
        body = response.json()
        assert body["commander_id"] == EDGAR_MARKOV_ID
        assert body["count"] > 0

    async def test_pool_count_unknown_commander(self, client: AsyncClient) -> None:
        response = await client.get(f"/api/v1/cards/pool/{uuid.uuid4()}")

        assert response.status_code == 404

    async def test_commander_search(self, client: AsyncClient, card_database) -> None:
        async def search_commanders(name: str):
            return [card_database.commanders[EDGAR_MARKOV_ID]]

        card_database.search_commanders = search_commanders

        response = await client.get("/api/v1/cards/commanders", params={"q": "edgar"})

        body = response.json()
        assert body["count"] == 1
        assert body["commanders"][0]["name"] == "Edgar Markov"
        assert body["commanders"][0]["color_identity"] == ["B", "R", "W"]

    async def test_commander_search_requires_query(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/cards/commanders")

        assert response.status_code == 422

    async def test_random_card(self, client: AsyncClient) -> None:
        response = await client.get("/api/v1/cards/random")

        assert response.status_code == 200
        assert "name" in response.json()
