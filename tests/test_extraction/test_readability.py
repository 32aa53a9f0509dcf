"""Tests for the local fallback extractor."""

import httpx
import pytest
import respx

from signal_pipeline.extraction.errors import ExternalServiceError
from signal_pipeline.extraction.readability import (
    ReadabilityExtractor,
    clean_text,
    extract_main_text,
)

PAGE = """
<html>
  <head><title>Fab news</title><script>var tracking = 1;</script></head>
  <body>
    <nav><a href="/">Home</a> <a href="/markets">Markets</a></nav>
    <aside>Subscribe to our newsletter</aside>
    <article>
      <h1>New fab announced</h1>
      <p>The company will build a <b>leading edge</b> fab.</p>
      <p>Production starts in 2028.</p>
    </article>
    <article><p>Related story</p></article>
    <footer>Copyright</footer>
  </body>
</html>
"""


class TestExtractMainText:
    def test_picks_largest_article_and_strips_boilerplate(self) -> None:
        text = extract_main_text(PAGE)

        assert text == (
            "New fab announced\n\n"
            "The company will build a leading edge fab.\n\n"
            "Production starts in 2028."
        )
        assert "Subscribe" not in text
        assert "tracking" not in text

    def test_falls_back_to_main(self) -> None:
        html = "<body><div>menu</div><main><p>Main body text</p></main></body>"
        assert extract_main_text(html) == "Main body text"

    def test_uses_container_text_without_blocks(self) -> None:
        assert extract_main_text("<body><div>Just   some\ntext</div></body>") == "Just some text"

    def test_empty(self) -> None:
        assert extract_main_text("") == ""

    def test_clean_text(self) -> None:
        assert clean_text("  a\x00b \t\n c ") == "ab c"


class TestReadabilityExtractor:
    @pytest.mark.asyncio
    @respx.mock
    async def test_extract(self) -> None:
        respx.get("https://news.example.com/fab").mock(return_value=httpx.Response(200, text=PAGE))

        async with ReadabilityExtractor(user_agent="test-agent") as local:
            page = await local.extract("https://news.example.com/fab")

        assert page.success
        assert page.word_count == 15
        assert respx.calls.last.request.headers["User-Agent"] == "test-agent"

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_page_is_failure(self) -> None:
        respx.get("https://news.example.com/empty").mock(
            return_value=httpx.Response(200, text="<html><body></body></html>")
        )

        async with ReadabilityExtractor() as local:
            page = await local.extract("https://news.example.com/empty")

        assert not page.success
        assert page.error == "No readable content"

    @pytest.mark.asyncio
    @respx.mock
    async def test_http_error_raises_after_one_attempt(self) -> None:
        route = respx.get("https://news.example.com/gone").mock(return_value=httpx.Response(500))

        async with ReadabilityExtractor() as local:
            with pytest.raises(ExternalServiceError):
                await local.extract("https://news.example.com/gone")

        assert route.call_count == 1
