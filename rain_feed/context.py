"""
The Context Generator: where a chunk sits within its full document.
"""

from typing import Callable, Iterator, Tuple

from llm.llm_util import get_llm_response, stream_llm_response
from rain_feed.chunk_store import ChunkStore
from rain_feed.constants import PROMPTS_DIR, SCORING_TIMEOUT_SECONDS
from rain_feed.document_fetcher import DocumentFetcher
from rain_feed.errors import NotFoundError
from rain_feed.settings import SettingsStore
from util.logging_util import setup_logger

logger = setup_logger(__name__)

CHUNK_CONTEXT_TEMPLATE = PROMPTS_DIR / "chunk_context.jinja2"


class ContextGenerator:

    def __init__(
        self,
        chunks: ChunkStore,
        settings: SettingsStore,
        fetcher: DocumentFetcher,
        respond: Callable[..., str] = get_llm_response,
        stream_respond: Callable[..., Iterator[str]] = stream_llm_response,
        timeout: float = SCORING_TIMEOUT_SECONDS,
    ):
        self.chunks = chunks
        self.settings = settings
        self.fetcher = fetcher
        self.respond = respond
        self.stream_respond = stream_respond
        self.timeout = timeout

    def _prepare(self, user_id: str, chunk_id: int) -> Tuple[dict, str]:
        chunk = self.chunks.get_chunk(user_id, chunk_id)
        if chunk is None:
            raise NotFoundError("Chunk not found")
        article = self.chunks.get_article(user_id, chunk.article_id)
        if article is None:
            raise NotFoundError("Article not found")

        # No safe default for the document: UpstreamError propagates
        document = self.fetcher.fetch_markdown(article.url)
        model = self.settings.get_or_create(user_id).context_model
        return {"chunk": chunk.content, "document": document}, model

    def generate(self, user_id: str, chunk_id: int) -> str:
        params, model = self._prepare(user_id, chunk_id)
        return self.respond(
            str(CHUNK_CONTEXT_TEMPLATE), params, model_name=model, timeout=self.timeout
        )

    def stream(self, user_id: str, chunk_id: int) -> Iterator[str]:
        """Like generate, but yields the text as it arrives.

        Lookups and the document fetch happen before the first yield, so
        their errors surface before any output is sent.
        """
        params, model = self._prepare(user_id, chunk_id)
        return self.stream_respond(
            str(CHUNK_CONTEXT_TEMPLATE), params, model_name=model, timeout=self.timeout
        )
