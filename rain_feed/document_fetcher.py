"""
Fetching a web page as cleaned markdown through a reader service.
"""

import re
from dataclasses import dataclass
from typing import Optional

import requests

from rain_feed.constants import (
    DOCUMENT_READER_BASE_URL,
    FETCH_TIMEOUT_SECONDS,
    MARKDOWN_CONTENT_MARKER,
)
from rain_feed.errors import UpstreamError
from util.logging_util import setup_logger

logger = setup_logger(__name__)

TITLE_HEADER = re.compile(r"^Title:\s*(.+)$", re.MULTILINE)
MARKDOWN_CONTENT = re.compile(re.escape(MARKDOWN_CONTENT_MARKER) + r"\s*\n(.*)", re.DOTALL)


@dataclass
class FetchedDocument:
    markdown: str
    title: Optional[str] = None


def strip_reader_header(content: str) -> str:
    """Drop the reader's metadata header, keeping only the markdown body."""
    match = MARKDOWN_CONTENT.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def parse_reader_response(content: str) -> FetchedDocument:
    """Split a reader response into its title (if any) and markdown body."""
    title = None
    header_end = content.find(MARKDOWN_CONTENT_MARKER)
    if header_end != -1:
        title_match = TITLE_HEADER.search(content[:header_end])
        if title_match:
            title = title_match.group(1).strip() or None
    return FetchedDocument(markdown=strip_reader_header(content), title=title)


class DocumentFetcher:
    """Client for the reader service that turns a URL into markdown."""

    def __init__(
        self,
        base_url: str = DOCUMENT_READER_BASE_URL,
        timeout: float = FETCH_TIMEOUT_SECONDS,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.session = session or requests.Session()

    def fetch(self, url: str) -> FetchedDocument:
        """Fetch a page. Raises UpstreamError on timeout or a non-2xx answer."""
        try:
            response = self.session.get(
                f"{self.base_url}{url}",
                headers={"Accept": "text/markdown"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            logger.error(f"Error fetching document {url}: {e}")
            raise UpstreamError(f"Failed to fetch document: {e}") from e

        if not response.ok:
            logger.error(f"Document fetch for {url} returned {response.status_code}")
            raise UpstreamError(f"Failed to fetch markdown ({response.status_code})")

        return parse_reader_response(response.text)

    def fetch_markdown(self, url: str) -> str:
        return self.fetch(url).markdown
