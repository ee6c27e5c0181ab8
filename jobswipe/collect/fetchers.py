"""
Fetch strategies for the job board.

Both strategies implement ``async fetch(url) -> str`` and raise
`TransportError` when the page cannot be retrieved:

* `HttpFetcher` issues a single ``aiohttp`` GET with the headers of a
  desktop browser.  It is fast and cheap but is the first thing to
  break when the site tightens its bot detection or moves rendering to
  the client.
* `BrowserFetcher` drives headless Chrome through Selenium.  It is
  slower and needs a Chrome install, but survives JS-rendered markup
  and header fingerprinting.  Selenium is synchronous, so navigation
  runs in the default thread pool executor.

Neither strategy retries; the caller decides whether to try again.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import aiohttp
from selenium.common.exceptions import WebDriverException

from ..errors import ConfigurationError, TransportError
from ..normalize.html_to_listings import RESULT_SELECTOR
from .browser import Driver, create_browser_config, init_browser, navigate_and_get_html

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: Dict[str, str] = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
    "Referer": "https://www.jobs.ac.uk/",
    "Upgrade-Insecure-Requests": "1",
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
    "Sec-Fetch-Site": "same-origin",
    "Sec-Fetch-User": "?1",
}


class PageFetcher(ABC):
    """Retrieve the HTML of one page."""

    @abstractmethod
    async def fetch(self, url: str) -> str:
        raise NotImplementedError


class HttpFetcher(PageFetcher):
    """Plain HTTP fetch with browser-like headers."""

    def __init__(self, *, timeout: float = 20.0, headers: Optional[Dict[str, str]] = None) -> None:
        self.timeout = timeout
        self.headers = dict(DEFAULT_HEADERS)
        if headers:
            self.headers.update(headers)

    async def fetch(self, url: str) -> str:
        client_timeout = aiohttp.ClientTimeout(total=self.timeout)
        try:
            async with aiohttp.ClientSession(headers=self.headers, timeout=client_timeout) as session:
                async with session.get(url) as response:
                    if not 200 <= response.status < 300:
                        logger.error("Upstream status %d for %s", response.status, url)
                        raise TransportError(
                            f"Upstream error: {response.status}", status=response.status, url=url
                        )
                    try:
                        return await response.text()
                    except UnicodeDecodeError as exc:
                        raise TransportError(
                            f"Could not decode page from {url}: {exc.reason}", status=response.status, url=url
                        ) from exc
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Timed out after {self.timeout}s fetching {url}", url=url) from exc
        except aiohttp.ClientError as exc:
            raise TransportError(f"Failed to fetch {url}: {exc}", url=url) from exc


class BrowserFetcher(PageFetcher):
    """Fetch through a headless Chrome session, one session per call."""

    def __init__(
        self,
        *,
        timeout: float = 20.0,
        headless: bool = True,
        driver_factory: Optional[Callable[[], Driver]] = None,
    ) -> None:
        self.timeout = timeout
        self.headless = headless
        self._driver_factory = driver_factory or self._default_driver

    def _default_driver(self) -> Driver:
        return init_browser(create_browser_config(headless=self.headless, timeout=self.timeout))

    def _fetch_sync(self, url: str) -> str:
        try:
            driver = self._driver_factory()
        except WebDriverException as exc:
            raise TransportError(f"Could not start browser: {exc.msg}", url=url) from exc
        except Exception as exc:  # noqa: BLE001
            # driver download and Chrome discovery fail with requests/OS/value errors
            raise TransportError(f"Could not start browser: {exc}", url=url) from exc
        try:
            return navigate_and_get_html(driver, url, self.timeout, wait_selector=RESULT_SELECTOR)
        except WebDriverException as exc:
            raise TransportError(f"Navigation to {url} failed: {exc.msg}", url=url) from exc
        finally:
            driver.quit()

    async def fetch(self, url: str) -> str:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._fetch_sync, url)


def get_fetcher(strategy: str, *, timeout: float = 20.0, headless: bool = True) -> PageFetcher:
    """Return the fetcher for ``strategy`` (``"http"`` or ``"browser"``)."""
    name = (strategy or "").strip().lower()
    if name == "http":
        return HttpFetcher(timeout=timeout)
    if name == "browser":
        return BrowserFetcher(timeout=timeout, headless=headless)
    raise ConfigurationError(f"Unknown fetch strategy '{strategy}'; expected 'http' or 'browser'")
