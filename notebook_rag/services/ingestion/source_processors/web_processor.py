"""Source processor for web pages.

Fetches a URL with httpx and reduces the HTML to readable text with
BeautifulSoup:

1. Remove ``script``, ``style``, ``nav``, ``footer``, ``header``,
   ``aside`` and ``iframe`` elements.
2. Pick the primary content element, first match of ``main``,
   ``article``, ``.content``, ``#content``, ``.main``, ``body``.
3. Join the stripped text of its ``p``, ``h1``-``h6``, ``li`` and
   ``blockquote`` descendants with blank lines.

Pages with no primary element fall back to the whole document's text.
"""

from __future__ import annotations

import httpx
import structlog
from bs4 import BeautifulSoup

from notebook_rag.utils.errors import SourceFetchError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_TIMEOUT = 30.0

_DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (compatible; notebook-rag/0.1; +https://github.com/notebook-rag)"
    ),
}

_STRIP_TAGS = ["script", "style", "nav", "footer", "header", "aside", "iframe"]
_PRIMARY_SELECTORS = ["main", "article", ".content", "#content", ".main", "body"]
_TEXT_TAGS = "p, h1, h2, h3, h4, h5, h6, li, blockquote"
_ALLOWED_SCHEMES = ("http", "https")


def validate_url(url: str) -> httpx.URL:
    """Parse *url*, requiring an absolute http(s) URL with a host.

    Raises
    ------
    SourceFetchError
        If the URL is malformed, relative or uses another scheme.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError) as exc:
        raise SourceFetchError(
            message=f"Invalid URL {url!r}: {exc}",
            provider_name="website",
        ) from exc
    if parsed.scheme not in _ALLOWED_SCHEMES or not parsed.host:
        raise SourceFetchError(
            message=f"Invalid URL {url!r}: expected an absolute http(s) URL",
            provider_name="website",
        )
    return parsed


def html_to_text(html: str) -> str:
    """Reduce an HTML document to its readable block text."""
    soup = BeautifulSoup(html, "html.parser")
    for element in soup.find_all(_STRIP_TAGS):
        element.decompose()

    primary = None
    for selector in _PRIMARY_SELECTORS:
        primary = soup.select_one(selector)
        if primary is not None:
            break

    if primary is None:
        return soup.get_text()
    return "\n\n".join(el.get_text().strip() for el in primary.select(_TEXT_TAGS))


class WebPageProcessor:
    """Fetches web pages and extracts their main text."""

    def __init__(
        self,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = _DEFAULT_TIMEOUT,
    ) -> None:
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            headers=_DEFAULT_HEADERS,
            follow_redirects=True,
        )

    async def extract(self, url: str) -> str:
        """Fetch *url* and return its readable text.

        Raises
        ------
        SourceFetchError
            On malformed URLs, timeouts, non-2xx responses and transport errors.
        """
        target = validate_url(url)
        try:
            response = await self._client.get(target)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise SourceFetchError(
                message=f"Timeout fetching {url}: {exc}",
                provider_name="website",
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise SourceFetchError(
                message=f"HTTP {exc.response.status_code} for {url}",
                provider_name="website",
            ) from exc
        except httpx.HTTPError as exc:
            raise SourceFetchError(
                message=f"HTTP error fetching {url}: {exc}",
                provider_name="website",
            ) from exc
        except httpx.InvalidURL as exc:
            raise SourceFetchError(
                message=f"Invalid URL {url!r}: {exc}",
                provider_name="website",
            ) from exc

        text = html_to_text(response.text)
        logger.info("website_processed", url=url, text_length=len(text))
        return text

    async def close(self) -> None:
        await self._client.aclose()
