"""Tests for the relevance scorer."""

import random
import threading

import pytest
from hypothesis import given, strategies as st

from rain_feed.models import CandidateChunk, FewShotExample
from rain_feed.scorer import RelevanceScorer, clamp_score, parse_scores

EXAMPLES = [FewShotExample(content="liked this", rating=5, annotation="great")]


def candidates(n):
    return [CandidateChunk(id=i, content=f"chunk {i}") for i in range(1, n + 1)]


class RecordingBackend:
    """Returns fixed scores and records the batches it was given."""

    def __init__(self, scores):
        self.scores = scores
        self.batches = []
        self._lock = threading.Lock()

    def __call__(self, batch, examples, model):
        with self._lock:
            self.batches.append([c.id for c in batch])
        return {c.id: self.scores[c.id] for c in batch if c.id in self.scores}


class TestParseScores:
    """Tests for parse_scores."""

    def test_plain_json(self):
        assert parse_scores('{"scores": [{"id": 1, "score": 4.5}, {"id": "2", "score": 2}]}') == {1: 4.5, 2: 2.0}

    def test_code_fence(self):
        response = '```json\n{"scores": [{"id": 3, "score": 1}]}\n```'
        assert parse_scores(response) == {3: 1.0}

    def test_bad_entries_skipped(self):
        response = '{"scores": [{"id": 1}, {"id": 2, "score": "high"}, "junk", {"id": 3, "score": 5}]}'
        assert parse_scores(response) == {3: 5.0}

    def test_missing_scores_list(self):
        with pytest.raises(ValueError):
            parse_scores('{"ratings": []}')

    def test_not_json(self):
        with pytest.raises(ValueError):
            parse_scores("I think they are all great")


class TestClampScore:
    """Tests for clamp_score."""

    def test_clamps(self):
        assert clamp_score(7) == 5.0
        assert clamp_score(-1) == 1.0
        assert clamp_score(3.3) == 3.3


class TestRelevanceScorer:
    """Tests for RelevanceScorer.score."""

    def test_random_scores_without_examples(self):
        backend = RecordingBackend({})
        scorer = RelevanceScorer(backend, rng=random.Random(0))

        scored = scorer.score(candidates(20), [], "model", batch_size=5)

        assert backend.batches == []
        assert [s.id for s in scored] == list(range(1, 21))
        assert all(1.0 <= s.score <= 5.0 for s in scored)

    def test_scores_in_input_order_and_clamped(self):
        backend = RecordingBackend({1: 4.0, 2: 9.0, 3: 0.0})
        scorer = RelevanceScorer(backend)

        scored = scorer.score(candidates(4), EXAMPLES, "model", batch_size=10)

        assert [(s.id, s.score) for s in scored] == [(1, 4.0), (2, 5.0), (3, 1.0), (4, 3.0)]
        assert not any(s.was_explore for s in scored)

    def test_batches(self):
        backend = RecordingBackend({i: 4.0 for i in range(1, 6)})
        scorer = RelevanceScorer(backend, max_workers=2)

        scorer.score(candidates(5), EXAMPLES, "model", batch_size=2)

        assert sorted(backend.batches) == [[1, 2], [3, 4], [5]]

    def test_failed_batch_gets_neutral_score(self):
        def backend(batch, examples, model):
            if batch[0].id == 1:
                raise RuntimeError("LLM unavailable")
            return {c.id: 5.0 for c in batch}

        scored = RelevanceScorer(backend).score(candidates(4), EXAMPLES, "model", batch_size=2)

        assert [s.score for s in scored] == [3.0, 3.0, 5.0, 5.0]

    def test_scores_for_other_batches_ignored(self):
        def backend(batch, examples, model):
            return {99: 1.0, batch[0].id: 2.0}

        scored = RelevanceScorer(backend).score(candidates(2), EXAMPLES, "model", batch_size=1)

        assert [s.score for s in scored] == [2.0, 2.0]

    def test_timeout_gives_neutral_scores(self):
        release = threading.Event()

        def slow_backend(batch, examples, model):
            release.wait(5)
            return {c.id: 5.0 for c in batch}

        scorer = RelevanceScorer(slow_backend, timeout=0.1)
        try:
            scored = scorer.score(candidates(3), EXAMPLES, "model", batch_size=10)
        finally:
            release.set()

        assert [s.score for s in scored] == [3.0, 3.0, 3.0]

    def test_empty(self):
        assert RelevanceScorer(RecordingBackend({})).score([], EXAMPLES, "model", batch_size=5) == []


@given(st.floats(allow_nan=False))
def test_clamped_scores_stay_in_range(score):
    assert 1.0 <= clamp_score(score) <= 5.0
