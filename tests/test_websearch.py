import asyncio
from typing import List

import httpx
import pytest

from tripchat.errors import ConfigurationError
from tripchat.tools import websearch
from tripchat.tools.websearch import ExaSearcher


class DummyResponse:
    def __init__(self, payload):
        self._payload = payload

    def raise_for_status(self):
        return None

    def json(self):
        return self._payload


class DummyAsyncClient:
    def __init__(self, response_payload, *args, **kwargs):
        self.response_payload = response_payload
        self.requests: List[tuple] = []

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        return None

    async def post(self, url, json, headers=None):
        self.requests.append((url, json, headers))
        return DummyResponse(self.response_payload)


def _install_client(monkeypatch, payload) -> List[DummyAsyncClient]:
    clients: List[DummyAsyncClient] = []

    def factory(*args, **kwargs):
        client = DummyAsyncClient(payload, *args, **kwargs)
        clients.append(client)
        return client

    monkeypatch.setattr(httpx, "AsyncClient", factory)
    return clients


def test_search_posts_query_with_domains_and_key(monkeypatch):
    async def run() -> None:
        clients = _install_client(monkeypatch, {"results": []})
        searcher = ExaSearcher(api_key="exa-test", include_domains=["booking.com"], num_results=7, recency_days=30)

        await searcher.search('site:booking.com "Tokyo" hotels')

        url, body, headers = clients[0].requests[0]
        assert url == ExaSearcher.SEARCH_ENDPOINT
        assert headers == {"x-api-key": "exa-test"}
        assert body["query"] == 'site:booking.com "Tokyo" hotels'
        assert body["type"] == "neural"
        assert body["numResults"] == 7
        assert body["contents"] == {"text": True, "highlights": True}
        assert body["includeDomains"] == ["booking.com"]
        assert len(body["startPublishedDate"]) == 10

    asyncio.run(run())


def test_search_normalises_missing_fields(monkeypatch):
    async def run() -> None:
        payload = {
            "results": [
                {
                    "id": "abc",
                    "url": "https://www.yelp.com/biz/ramen",
                    "title": None,
                    "score": None,
                    "text": None,
                    "highlights": None,
                },
                {"url": "https://www.viator.com/tour", "title": "Tour", "author": "Ed", "score": 0.7},
                {"title": "No url"},
            ]
        }
        _install_client(monkeypatch, payload)

        results = await ExaSearcher(api_key="exa-test").search("ramen")

        assert [r.id for r in results] == ["abc", "https://www.viator.com/tour"]
        first = results[0]
        assert first.title == ""
        assert first.text == ""
        assert first.highlights == []
        assert first.score == 0.0
        assert first.author == "Unknown"
        assert first.published_date
        assert results[1].author == "Ed"
        assert results[1].score == 0.7

    asyncio.run(run())


def test_search_without_key_is_a_configuration_error(monkeypatch):
    async def run() -> None:
        monkeypatch.setenv("EXASEARCH_API_KEY", "your_exa_api_key_here")
        clients = _install_client(monkeypatch, {"results": []})

        with pytest.raises(ConfigurationError):
            await ExaSearcher().search("anything")
        assert clients == []

    asyncio.run(run())


def test_default_domains_come_from_catalog(monkeypatch):
    monkeypatch.setenv("EXASEARCH_API_KEY", "exa-env")
    searcher = websearch.ExaSearcher()

    assert searcher.api_key == "exa-env"
    assert "tripadvisor.com" in searcher.include_domains
    assert "rome2rio.com" in searcher.include_domains
