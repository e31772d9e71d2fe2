"""
Series downloader: walks a paginated article series by following its "next"
link and saves the content region of every page as a standalone HTML file,
ready for html-cleanup or an EPUB packager.
"""

import logging
import re
import sys
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from urllib.parse import urljoin, urlparse

import httpx
from bs4 import BeautifulSoup, NavigableString, Tag

from html_cleanup.engine import new_document, remove_elements
from html_cleanup.rules import ElementRemovalSpec

logger = logging.getLogger(__name__)

# Configuration
FIRST_URL = "https://offqc1.rssing.com/chan-7703398/article1.html"
# Parent element of the content to keep
CONTENT_ELEMENT_SELECTOR = "div.cs-single-post-content > div"
# Link to the next page of the series
NEXT_URL_SELECTOR = 'a[title="Next Article"]'
# Elements to drop from the content element
ELEMENTS_TO_REMOVE: tuple[ElementRemovalSpec, ...] = (
    ElementRemovalSpec("img[data-src]", attribute="data-src", content="stats.wordpress.com/b.gif"),
)
OUTPUT_DIR = Path("output")
REQUEST_DELAY_SECONDS: float = 1.0
REQUEST_TIMEOUT: int = 30
# Stop after this many pages, None for the whole series
MAX_PAGES: int | None = None
USER_AGENT = "SeriesDownloader/1.0 (+polite sequential crawler)"

PAGE_ID_PATTERN = re.compile(r"\((\d+)\)")


class CrawlError(Exception):
    """Base class for crawl errors."""
    pass


class ExtractionError(CrawlError):
    """A required part of a page could not be found."""
    pass


@dataclass
class ScrapedPage:
    url: str
    title: str
    content: Tag
    next_url: str | None


def normalize_next_url(href: str | None, current_url: str) -> str | None:
    """Protocol-relative links become http:, other relative links are resolved."""
    if not href:
        return None
    href = href.strip()
    if href.startswith("//"):
        return f"http:{href}"
    return urljoin(current_url, href)


def fetch_page(client: httpx.Client, url: str) -> str:
    """Fetch a page. HTTP and network errors propagate and end the crawl."""
    logger.info(f"Fetching: {url}")
    response = client.get(url)
    response.raise_for_status()
    return response.text


def scrape_page(
    client: httpx.Client,
    url: str,
    content_selector: str = CONTENT_ELEMENT_SELECTOR,
    next_selector: str = NEXT_URL_SELECTOR,
) -> ScrapedPage:
    soup = BeautifulSoup(fetch_page(client, url), "lxml")

    title = soup.title.get_text().strip() if soup.title else ""

    content = soup.select_one(content_selector)
    if content is None:
        raise ExtractionError(f"Content element not found: {content_selector} in {url}")

    next_link = soup.select_one(next_selector)
    next_url = normalize_next_url(next_link.get("href") if next_link else None, url)

    return ScrapedPage(url=url, title=title, content=content, next_url=next_url)


def clean_up_content(content: Tag, specs=ELEMENTS_TO_REMOVE) -> Tag:
    remove_elements(content, specs, warn_missing=True)

    # Drop a trailing line break, ignoring whitespace after it
    for child in reversed(content.contents):
        if isinstance(child, NavigableString) and not child.strip():
            continue
        if isinstance(child, Tag) and child.name == "br":
            child.decompose()
        break

    return content


def page_filename(title: str, url: str | None = None) -> str:
    """
    File name from the last parenthesized number in the title: 'Lesson (12)'
    -> '12.html'. Without one, the last segment of the page URL is used.
    """
    ids = PAGE_ID_PATTERN.findall(title)
    if ids:
        return f"{ids[-1]}.html"

    stem = PurePosixPath(urlparse(url).path).stem if url else ""
    if not stem:
        raise ExtractionError(f"No numeric page id in title {title!r} and no usable URL: {url!r}")
    logger.warning(f"No numeric page id in title {title!r}, naming the file after the URL: {stem}.html")
    return f"{stem}.html"


def render_page(title: str, content: Tag) -> str:
    """Wrap the content's children in a minimal standalone document."""
    document = new_document(title)
    body = document.body
    for child in list(content.contents):
        body.append(child.extract())

    # Trim surrounding whitespace like innerHTML.trim()
    if body.contents and isinstance(body.contents[0], NavigableString):
        _replace_text(body.contents[0], body.contents[0].lstrip())
    if body.contents and isinstance(body.contents[-1], NavigableString):
        _replace_text(body.contents[-1], body.contents[-1].rstrip())
    return str(document)


def _replace_text(node: NavigableString, text: str):
    if text:
        node.replace_with(NavigableString(text))
    else:
        node.extract()


def save_page(output_dir: Path, title: str, content: Tag, url: str | None = None) -> Path:
    filepath = output_dir / page_filename(title, url)
    logger.info(f"Saving {title} -> {filepath}")
    with filepath.open("w", encoding="utf-8") as f:
        f.write(render_page(title, content))
    return filepath


def crawl(
    start_url: str,
    *,
    client: httpx.Client,
    output_dir: Path = OUTPUT_DIR,
    delay: float = REQUEST_DELAY_SECONDS,
    max_pages: int | None = MAX_PAGES,
    content_selector: str = CONTENT_ELEMENT_SELECTOR,
    next_selector: str = NEXT_URL_SELECTOR,
    specs=ELEMENTS_TO_REMOVE,
) -> list[Path]:
    """
    Fetch, clean and save pages until a page has no next link (or
    ``max_pages`` is reached). Returns the saved file paths in crawl order.
    """
    saved: list[Path] = []
    url: str | None = start_url

    while url:
        page = scrape_page(client, url, content_selector, next_selector)
        content = clean_up_content(page.content, specs)
        saved.append(save_page(output_dir, page.title, content, page.url))

        if max_pages is not None and len(saved) >= max_pages:
            logger.info(f"Stopping after {len(saved)} pages (max_pages)")
            break

        url = page.next_url
        if url:
            # be a good citizen and wait a little in between pages
            time.sleep(delay)

    logger.info(f"Crawl finished: {len(saved)} pages saved to {output_dir}")
    return saved


def setup_environment(output_dir: Path = OUTPUT_DIR):
    output_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Using output directory: {output_dir}")


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(filename)s:%(lineno)d - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
    )
    setup_environment(OUTPUT_DIR)

    headers = {"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml;q=0.9,*/*;q=0.8"}
    try:
        with httpx.Client(headers=headers, follow_redirects=True, timeout=REQUEST_TIMEOUT) as client:
            crawl(FIRST_URL, client=client, output_dir=OUTPUT_DIR)
    except CrawlError as e:
        logger.error(f"Crawl aborted: {e}")
        return 1
    except httpx.HTTPStatusError as e:
        logger.error(f"HTTP error fetching {e.request.url}: {e.response.status_code} {e.response.reason_phrase}")
        return 1
    except httpx.RequestError as e:
        logger.error(f"Network error fetching {e.request.url}: {e}")
        return 1
    except OSError as e:
        logger.error(f"Failed to write output: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
