"""Tests for article ingestion and status changes."""

import random

import pytest

from rain_feed.articles import ArticleStore, validate_url
from rain_feed.candidates import CandidateSelector
from rain_feed.chunk_store import ChunkStore
from rain_feed.errors import InvalidTransition, NotFoundError, ValidationError
from rain_feed.feed_queue import FeedQueue
from rain_feed.models import ArticleStatus, ScoredChunk
from rain_feed.ratings import RatingStore
from rain_feed.settings import SettingsStore

from tests.rain_feed.fakes import OTHER_USER, USER, FakeFetcher, seed_article, show_chunks

MARKDOWN = "\n\n".join(" ".join([f"p{i}"] * 40) for i in range(3))


def make_store(db, fetcher):
    return ArticleStore(db, ChunkStore(db), SettingsStore(db), fetcher)


class TestValidateUrl:
    """Tests for validate_url."""

    def test_valid(self):
        assert validate_url("  https://example.com/x ") == "https://example.com/x"

    @pytest.mark.parametrize("url", [None, "", "not a url", "ftp://example.com", "https://"])
    def test_invalid(self, url):
        with pytest.raises(ValidationError):
            validate_url(url)


class TestAddArticle:
    """Tests for ArticleStore.add_article."""

    def test_chunks_with_user_chunk_size(self, db):
        SettingsStore(db).update(USER, {"chunk_size": 50})
        store = make_store(db, FakeFetcher(markdown=MARKDOWN, title="Real Title"))

        article = store.add_article(USER, "https://example.com/post")

        assert article.id is not None
        assert article.title == "Real Title"
        assert article.status == ArticleStatus.CLOUD
        chunks = ChunkStore(db).chunks_for_article(USER, article.id)
        assert [c.chunk_index for c in chunks] == [0, 1, 2]
        assert all(c.word_count == 40 for c in chunks)

    def test_fetch_failure_saves_without_chunks(self, db):
        store = make_store(db, FakeFetcher(fail=True))

        article = store.add_article(USER, "https://example.com/post")

        assert article.title == "example.com"
        assert ChunkStore(db).chunks_for_article(USER, article.id) == []

    def test_invalid_url(self, db):
        with pytest.raises(ValidationError):
            make_store(db, FakeFetcher()).add_article(USER, "nope")


class TestArticleStatus:
    """Tests for status changes and deletion."""

    def test_active_ids_only_cloud(self, db):
        store = make_store(db, FakeFetcher(markdown=MARKDOWN))
        first = store.add_article(USER, "https://example.com/1")
        second = store.add_article(USER, "https://example.com/2")

        store.set_status(USER, second.id, ArticleStatus.OCEAN)

        assert store.active_article_ids(USER) == [first.id]
        assert store.active_article_ids(OTHER_USER) == []

    def test_get_article_is_owner_scoped(self, db):
        store = make_store(db, FakeFetcher())
        article = store.add_article(USER, "https://example.com/1")

        assert store.get_article(USER, article.id).url == "https://example.com/1"
        with pytest.raises(NotFoundError):
            store.get_article(OTHER_USER, article.id)

    def test_set_status_stamps_time(self, db):
        store = make_store(db, FakeFetcher())
        article = store.add_article(USER, "https://example.com/1")

        moved = store.set_status(USER, article.id, ArticleStatus.RIVER)

        assert moved.status == ArticleStatus.RIVER
        assert moved.moved_to_river_at is not None
        assert store.list_articles(USER)[0].status == ArticleStatus.RIVER

    def test_same_status_rejected(self, db):
        store = make_store(db, FakeFetcher())
        article = store.add_article(USER, "https://example.com/1")

        with pytest.raises(InvalidTransition):
            store.set_status(USER, article.id, ArticleStatus.CLOUD)

    def test_other_users_article_not_found(self, db):
        store = make_store(db, FakeFetcher())
        article = store.add_article(USER, "https://example.com/1")

        with pytest.raises(NotFoundError):
            store.set_status(OTHER_USER, article.id, ArticleStatus.RIVER)
        with pytest.raises(NotFoundError):
            store.delete_article(OTHER_USER, article.id)

    def test_delete_removes_chunks_and_queue_entries(self, db):
        store = make_store(db, FakeFetcher(markdown=MARKDOWN))
        SettingsStore(db).update(USER, {"chunk_size": 50})
        article = store.add_article(USER, "https://example.com/1")
        chunks = ChunkStore(db).chunks_for_article(USER, article.id)
        queue = FeedQueue(db)
        queue.insert(USER, [ScoredChunk(id=c.id, score=3.0) for c in chunks])

        store.delete_article(USER, article.id)

        assert store.list_articles(USER) == []
        assert ChunkStore(db).chunks_for_article(USER, article.id) == []
        assert queue.size(USER) == 0

    def test_new_chunks_never_reuse_deleted_ids(self, db):
        store = make_store(db, FakeFetcher())
        old_article, old_ids = seed_article(db, n_chunks=3, url="https://example.com/old")
        show_chunks(db, old_ids)
        RatingStore(db).rate(USER, old_ids[0], 2)

        store.delete_article(USER, old_article)
        new_article, new_ids = seed_article(db, n_chunks=3, url="https://example.com/new")

        assert not set(old_ids) & set(new_ids)
        assert new_article != old_article
        candidates = CandidateSelector(db, rng=random.Random(0)).select(USER, [new_article], 100)
        assert sorted(c.id for c in candidates) == sorted(new_ids)
