"""
Local fallback extraction: fetch the page and strip boilerplate in-process.

Runs only when both remote tiers failed, so it favours being forgiving:
the largest <article> wins, then <main>, then <body>.
"""

import logging
import re

from bs4 import BeautifulSoup

from signal_pipeline.extraction.http_client import HTTPClient
from signal_pipeline.extraction.schemas import PageExtraction, count_words

logger = logging.getLogger(__name__)

_BOILERPLATE_TAGS = [
    "script", "style", "nav", "footer", "header", "aside", "form", "noscript", "iframe", "svg",
]
_BLOCK_TAGS = ["h1", "h2", "h3", "h4", "p", "blockquote", "pre"]
_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def clean_text(text: str) -> str:
    """Collapse whitespace and drop control characters."""
    text = " ".join(text.split())
    return _CONTROL_CHARS.sub("", text).strip()


def extract_main_text(html: str) -> str:
    """
    Extract the readable body text of an HTML document.

    Args:
        html: Raw HTML

    Returns:
        Paragraph text separated by blank lines, or "" if nothing readable
    """
    if not html:
        return ""

    soup = BeautifulSoup(html, "html.parser")
    for element in soup(_BOILERPLATE_TAGS):
        element.decompose()

    articles = soup.find_all("article")
    if articles:
        container = max(articles, key=lambda a: len(a.get_text(" ", strip=True)))
    else:
        container = soup.find("main") or soup.body or soup

    blocks = []
    for element in container.find_all(_BLOCK_TAGS):
        # Nested blocks are covered by their outer block
        if element.find_parent(["p", "blockquote", "pre"]):
            continue
        text = clean_text(element.get_text(" "))
        if text:
            blocks.append(text)

    if blocks:
        return "\n\n".join(blocks)
    return clean_text(container.get_text(" "))


class ReadabilityExtractor:
    """
    Fetches a page directly and extracts its main text.

    Usage:
        async with ReadabilityExtractor() as local:
            page = await local.extract(url)
    """

    service = "local"

    def __init__(self, timeout: float = 20.0, user_agent: str | None = None):
        headers = {"User-Agent": user_agent} if user_agent else None
        self._http = HTTPClient(service=self.service, timeout=timeout, headers=headers)

    async def __aenter__(self) -> "ReadabilityExtractor":
        await self._http.__aenter__()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    async def extract(self, url: str) -> PageExtraction:
        # Single attempt: this is already the last resort
        html = await self._http.get_text(url, retry=False)
        text = extract_main_text(html)
        if not text:
            return PageExtraction.failure(url, "No readable content")
        return PageExtraction(url=url, success=True, content=text, word_count=count_words(text))
