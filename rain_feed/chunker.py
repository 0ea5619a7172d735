"""
Splitting article markdown into word-bounded chunks.
"""

import re
from dataclasses import dataclass
from typing import List

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9\"'`(])")
PARAGRAPH_BREAK = re.compile(r"\n{2,}")


@dataclass
class TextChunk:
    content: str
    word_count: int


def _normalize_whitespace(text: str) -> str:
    return re.sub(r"[ \t]+", " ", text.replace("\r\n", "\n")).strip()


def count_words(text: str) -> int:
    return len(text.split())


def _split_sentences(text: str) -> List[str]:
    normalized = _normalize_whitespace(text)
    if not normalized:
        return []
    return [part.strip() for part in SENTENCE_BOUNDARY.split(normalized) if part.strip()]


def _split_by_words(text: str, target_words: int) -> List[str]:
    words = _normalize_whitespace(text).split()
    return [" ".join(words[i:i + target_words]) for i in range(0, len(words), target_words)]


def _split_large_paragraph(paragraph: str, target_words: int) -> List[str]:
    """Split a paragraph longer than the target, preferring sentence boundaries."""
    sentences = _split_sentences(paragraph)
    if len(sentences) <= 1:
        return _split_by_words(paragraph, target_words)

    chunks = []
    current: List[str] = []
    current_count = 0

    for sentence in sentences:
        sentence_count = count_words(sentence)
        if sentence_count > target_words:
            if current:
                chunks.append(" ".join(current))
                current, current_count = [], 0
            chunks.extend(_split_by_words(sentence, target_words))
            continue

        if current_count + sentence_count <= target_words:
            current.append(sentence)
            current_count += sentence_count
            continue

        chunks.append(" ".join(current))
        current, current_count = [sentence], sentence_count

    if current:
        chunks.append(" ".join(current))
    return [c for c in chunks if c]


def chunk_text(markdown: str, target_words: int = 200) -> List[TextChunk]:
    """
    Split markdown into chunks of roughly `target_words` words.

    Paragraphs are packed together while they fit; a paragraph that is
    too long on its own is split by sentences, and a sentence that is
    too long is split by words.

    Args:
        markdown: The cleaned document text.
        target_words: Upper bound on words per chunk.

    Returns:
        Chunks in document order.
    """
    clean = markdown.strip()
    if not clean:
        return []

    paragraphs = [p for p in (_normalize_whitespace(p) for p in PARAGRAPH_BREAK.split(clean)) if p]

    chunks: List[TextChunk] = []
    current_parts: List[str] = []
    current_words = 0

    def flush():
        nonlocal current_parts, current_words
        if current_parts:
            content = "\n\n".join(current_parts).strip()
            word_count = count_words(content)
            if content and word_count > 0:
                chunks.append(TextChunk(content=content, word_count=word_count))
        current_parts = []
        current_words = 0

    for paragraph in paragraphs:
        paragraph_words = count_words(paragraph)
        if paragraph_words > target_words:
            flush()
            for part in _split_large_paragraph(paragraph, target_words):
                chunks.append(TextChunk(content=part, word_count=count_words(part)))
            continue

        if current_words + paragraph_words <= target_words:
            current_parts.append(paragraph)
            current_words += paragraph_words
        else:
            flush()
            current_parts.append(paragraph)
            current_words = paragraph_words

    flush()
    return chunks
