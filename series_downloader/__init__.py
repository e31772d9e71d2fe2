"""Download a paginated article series one page per file."""

from .crawler import CrawlError, ExtractionError, ScrapedPage, crawl, page_filename, scrape_page

__all__ = ["CrawlError", "ExtractionError", "ScrapedPage", "crawl", "page_filename", "scrape_page"]
