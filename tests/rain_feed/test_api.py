"""Tests for the HTTP API."""

import random

import pytest
from fastapi.testclient import TestClient

from rain_feed.api import create_app
from rain_feed.chunk_store import ChunkStore
from rain_feed.context import ContextGenerator
from rain_feed.service import RainFeedService
from rain_feed.settings import SettingsStore

from tests.rain_feed.fakes import OTHER_USER, USER, FakeFetcher, seed_article

MARKDOWN = "\n\n".join(" ".join([f"p{i}"] * 40) for i in range(12))
HEADERS = {"X-User-Id": USER}


def fake_respond(template_path, params, model_name, timeout):
    return f"context for {params['chunk'][:2]}"


def fake_stream(template_path, params, model_name, timeout):
    yield "streamed "
    yield "context"


@pytest.fixture
def service(db):
    fetcher = FakeFetcher(markdown=MARKDOWN, title="Twelve Paragraphs")
    context = ContextGenerator(
        ChunkStore(db), SettingsStore(db), fetcher, respond=fake_respond, stream_respond=fake_stream
    )
    return RainFeedService(
        db,
        scoring_backend=lambda batch, examples, model: {c.id: 4.0 for c in batch},
        fetcher=fetcher,
        rng=random.Random(3),
        context=context,
    )


@pytest.fixture
def client(service):
    return TestClient(create_app(service))


def add_article(client):
    client.put("/settings", json={"chunk_size": 50, "feed_batch_size": 4}, headers=HEADERS)
    response = client.post("/articles", json={"url": "https://example.com/post"}, headers=HEADERS)
    assert response.status_code == 200
    return response.json()


class TestAuth:
    """Tests for the identity header."""

    def test_missing_user_header(self, client):
        response = client.get("/feed")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_health_needs_no_user(self, client):
        assert client.get("/health").json() == {"status": "ok"}


class TestFeedRoutes:
    """Tests for the feed endpoints."""

    def test_empty_feed_is_not_an_error(self, client):
        response = client.get("/feed", headers=HEADERS)

        assert response.status_code == 200
        body = response.json()
        assert body["items"] == []
        assert body["hasMore"] is False
        assert body["queueEmpty"] is True
        assert body["showExploreFlag"] is False

    def test_replenish_without_sources(self, client):
        body = client.post("/feed/replenish", headers=HEADERS).json()

        assert body == {"replenished": False, "queueSize": 0, "reason": "no_active_sources"}

    def test_replenish_then_read(self, client):
        add_article(client)

        replenish = client.post("/feed/replenish", headers=HEADERS).json()
        assert replenish == {"replenished": True, "queueSize": 4, "added": 4}

        page = client.get("/feed", headers=HEADERS).json()
        assert len(page["items"]) == 4
        assert page["hasMore"] is True
        assert page["hasBefore"] is False
        item = page["items"][0]
        assert item["article_title"] == "Twelve Paragraphs"
        assert item["position"] == 1

        again = client.post("/feed/replenish", headers=HEADERS).json()
        assert again["replenished"] is True

    def test_cursor_reads(self, client):
        add_article(client)
        client.post("/feed/replenish", headers=HEADERS)
        first = client.get("/feed", headers=HEADERS).json()["items"]
        client.post("/feed/replenish", headers=HEADERS)
        second = client.get("/feed", params={"after": first[-1]["feed_item_id"]}, headers=HEADERS).json()

        assert [i["position"] for i in second["items"]] == [5, 6, 7, 8]

        before = client.get("/feed", params={"before": second["items"][0]["feed_item_id"]}, headers=HEADERS).json()
        assert [i["position"] for i in before["items"]] == [1, 2, 3, 4]
        assert "hasMore" not in before

        from_page = client.get("/feed", params={"from": first[2]["feed_item_id"]}, headers=HEADERS).json()
        assert from_page["items"][0]["position"] == 3

    def test_cursor_errors(self, client):
        assert client.get("/feed", params={"after": 999}, headers=HEADERS).status_code == 400
        response = client.get("/feed", params={"after": 1, "before": 2}, headers=HEADERS)
        assert response.status_code == 400
        assert "error" in response.json()

    def test_position_and_history(self, client):
        add_article(client)
        client.post("/feed/replenish", headers=HEADERS)
        items = client.get("/feed", headers=HEADERS).json()["items"]

        response = client.put("/feed/position", json={"feed_item_id": items[1]["feed_item_id"]}, headers=HEADERS)
        assert response.json() == {"success": True}

        history = client.get("/feed/history", headers=HEADERS).json()
        assert history["resumeFeedItemId"] == items[1]["feed_item_id"]
        assert len(history["items"]) == 4

        assert client.put("/feed/position", json={"feed_item_id": None}, headers=HEADERS).status_code == 200

    def test_position_for_other_users_item(self, client):
        add_article(client)
        client.post("/feed/replenish", headers=HEADERS)
        item_id = client.get("/feed", headers=HEADERS).json()["items"][0]["feed_item_id"]

        response = client.put("/feed/position", json={"feed_item_id": item_id}, headers={"X-User-Id": OTHER_USER})
        assert response.status_code == 400

    def test_reroll(self, client, service):
        add_article(client)
        client.post("/feed/replenish", headers=HEADERS)
        items = client.get("/feed", headers=HEADERS).json()["items"]
        client.post("/feed/replenish", headers=HEADERS)

        response = client.post("/feed/reroll", json={"from_feed_item_id": items[0]["feed_item_id"]}, headers=HEADERS)

        assert response.json() == {"success": True}
        assert service.queue.size(USER) == 0
        assert [i.position for i in service.feed_log.head(USER, 10)] == [1]

    def test_reroll_without_body(self, client):
        assert client.post("/feed/reroll", headers=HEADERS).json() == {"success": True}


class TestRatingRoutes:
    """Tests for rating and accuracy endpoints."""

    def test_rate_flow(self, client):
        add_article(client)
        client.post("/feed/replenish", headers=HEADERS)
        item = client.get("/feed", headers=HEADERS).json()["items"][0]
        chunk_id = item["chunk_id"]

        response = client.post(f"/chunks/{chunk_id}/rate", json={"rating": 5, "annotation": "yes"}, headers=HEADERS)
        assert response.status_code == 200
        assert response.json()["rating"] == 5

        duplicate = client.post(f"/chunks/{chunk_id}/rate", json={"rating": 4}, headers=HEADERS)
        assert duplicate.status_code == 409

        accuracy = client.get("/accuracy", headers=HEADERS).json()
        assert accuracy["totalRatings"] == 1
        assert accuracy["overallMae"] == pytest.approx(5 - item["predicted_score"])
        assert len(accuracy["timeline"]["overall"]) == 1

    def test_rate_unshown_chunk(self, client, db):
        _, chunk_ids = seed_article(db, n_chunks=1)

        response = client.post(f"/chunks/{chunk_ids[0]}/rate", json={"rating": 3}, headers=HEADERS)
        assert response.status_code == 400

    def test_rate_invalid_value(self, client):
        response = client.post("/chunks/1/rate", json={"rating": 7}, headers=HEADERS)
        assert response.status_code == 400

    def test_accuracy_without_ratings(self, client):
        body = client.get("/accuracy", headers=HEADERS).json()
        assert body["overallMae"] is None
        assert body["timeline"] == {"overall": [], "explore": [], "exploit": []}


class TestArticleAndContextRoutes:
    """Tests for articles, settings, context and document endpoints."""

    def test_articles_crud(self, client):
        article = add_article(client)
        assert article["status"] == "cloud"

        listed = client.get("/articles", headers=HEADERS).json()
        assert [a["id"] for a in listed] == [article["id"]]

        fetched = client.get(f"/articles/{article['id']}", headers=HEADERS).json()
        assert fetched["title"] == "Twelve Paragraphs"
        assert client.get(f"/articles/{article['id']}", headers={"X-User-Id": OTHER_USER}).status_code == 404

        moved = client.patch(f"/articles/{article['id']}", json={"status": "river"}, headers=HEADERS).json()
        assert moved["status"] == "river"

        bad = client.patch(f"/articles/{article['id']}", json={"status": "lake"}, headers=HEADERS)
        assert bad.status_code == 400

        assert client.delete(f"/articles/{article['id']}", headers=HEADERS).json() == {"success": True}
        assert client.delete(f"/articles/{article['id']}", headers=HEADERS).status_code == 404

    def test_invalid_article_url(self, client):
        response = client.post("/articles", json={"url": "not-a-url"}, headers=HEADERS)
        assert response.status_code == 400

    def test_settings(self, client):
        assert client.get("/settings", headers=HEADERS).json()["feed_batch_size"] == 10

        updated = client.put("/settings", json={"feed_batch_size": 500, "show_explore_flag": True}, headers=HEADERS)

        assert updated.json()["feed_batch_size"] == 100
        assert client.get("/feed", headers=HEADERS).json()["showExploreFlag"] is True

    def test_context(self, client, db):
        _, chunk_ids = seed_article(db, n_chunks=1)

        assert client.get(f"/chunks/{chunk_ids[0]}/context", headers=HEADERS).json() == {"context": "context for Ch"}

        streamed = client.get(f"/chunks/{chunk_ids[0]}/context", params={"stream": "true"}, headers=HEADERS)
        assert streamed.text == "streamed context"

        assert client.get("/chunks/999/context", headers=HEADERS).status_code == 404

    def test_document(self, client, service):
        assert client.get("/document", params={"url": "https://example.com"}, headers=HEADERS).json() == {
            "content": MARKDOWN
        }

        service.fetcher.fail = True
        response = client.get("/document", params={"url": "https://example.com"}, headers=HEADERS)
        assert response.status_code == 500
        assert "error" in response.json()
