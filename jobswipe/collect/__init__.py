"""
Collection subsystem for jobswipe.

`search_jobs` fetches one search results page and returns normalized
listings.  The page is retrieved by a `PageFetcher`: `HttpFetcher`
(aiohttp) by default, or `BrowserFetcher` (headless Chrome) when the
site only serves its results to real browsers.
"""

from .fetchers import BrowserFetcher, HttpFetcher, PageFetcher, get_fetcher  # noqa: F401
from .runner import build_search_url, search_jobs  # noqa: F401
