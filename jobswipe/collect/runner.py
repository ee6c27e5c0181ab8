"""
Job search runner.

`search_jobs` turns a keyword into a list of `JobListing` records: it
builds the search URL, performs exactly one fetch with the supplied
strategy and hands the markup to the normalizer.  Transport failures
propagate to the caller untouched; a page without recognisable results
yields an empty list.
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional
from urllib.parse import quote

from ..config import ScraperSettings
from ..normalize.html_to_listings import parse_listings
from ..normalize.schema import JobListing
from .fetchers import PageFetcher, get_fetcher

logger = logging.getLogger(__name__)


def build_search_url(origin: str, keyword: str) -> str:
    """Return ``<origin>/search/?keywords=<urlencoded keyword>``."""
    return f"{origin.rstrip('/')}/search/?keywords={quote(keyword, safe='')}"


async def search_jobs(
    keyword: str,
    *,
    settings: Optional[ScraperSettings] = None,
    fetcher: Optional[PageFetcher] = None,
    rng: Optional[random.Random] = None,
) -> List[JobListing]:
    """Search the job board and return listings in document order.

    Args:
        keyword: Search keyword.  Blank keywords fall back to the
            configured default.
        settings: Scraper settings; package defaults when omitted.
        fetcher: Fetch strategy; built from ``settings.strategy`` when
            omitted.
        rng: Random generator for placeholder scores.

    Raises:
        TransportError: If the page could not be fetched.
    """
    settings = settings or ScraperSettings()
    fetcher = fetcher or get_fetcher(settings.strategy, timeout=settings.timeout, headless=settings.headless)
    keyword = (keyword or "").strip() or settings.default_keyword
    url = build_search_url(settings.origin, keyword)
    logger.info("Searching %s for %r", settings.source, keyword)
    html = await fetcher.fetch(url)
    listings = parse_listings(html, origin=settings.origin, source=settings.source, rng=rng)
    logger.info("Scraped %d jobs for query: %s", len(listings), keyword)
    return listings
