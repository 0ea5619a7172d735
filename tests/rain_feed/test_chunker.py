"""Tests for splitting markdown into chunks."""

from hypothesis import given, strategies as st

from rain_feed.chunker import chunk_text, count_words


def words(n, word="word"):
    return " ".join([word] * n)


class TestChunkText:
    """Tests for chunk_text."""

    def test_empty_input(self):
        assert chunk_text("") == []
        assert chunk_text("   \n\n  ") == []

    def test_small_paragraphs_are_packed(self):
        markdown = f"{words(10)}\n\n{words(10)}\n\n{words(10)}"
        chunks = chunk_text(markdown, target_words=50)

        assert len(chunks) == 1
        assert chunks[0].word_count == 30
        assert chunks[0].content.count("\n\n") == 2

    def test_paragraphs_split_when_over_target(self):
        markdown = f"{words(40, 'a')}\n\n{words(40, 'b')}"
        chunks = chunk_text(markdown, target_words=50)

        assert [c.word_count for c in chunks] == [40, 40]
        assert chunks[0].content.startswith("a")
        assert chunks[1].content.startswith("b")

    def test_long_paragraph_split_by_sentences(self):
        sentence = words(20) + "."
        paragraph = " ".join(["Start " + sentence] * 5)
        chunks = chunk_text(paragraph, target_words=50)

        assert len(chunks) > 1
        assert all(c.word_count <= 50 for c in chunks)
        assert sum(c.word_count for c in chunks) == count_words(paragraph)

    def test_long_sentence_split_by_words(self):
        chunks = chunk_text(words(120), target_words=50)

        assert [c.word_count for c in chunks] == [50, 50, 20]

    def test_word_counts_match_content(self):
        markdown = "One two three.\n\nFour five. Six seven eight!\n\n" + words(75)
        for chunk in chunk_text(markdown, target_words=50):
            assert chunk.word_count == count_words(chunk.content)


@given(
    st.lists(st.integers(min_value=1, max_value=150), min_size=1, max_size=8),
    st.integers(min_value=50, max_value=500),
)
def test_chunking_keeps_every_word(paragraph_lengths, target_words):
    markdown = "\n\n".join(words(n) for n in paragraph_lengths)
    chunks = chunk_text(markdown, target_words=target_words)

    assert sum(c.word_count for c in chunks) == sum(paragraph_lengths)
    assert all(0 < c.word_count <= target_words for c in chunks)
