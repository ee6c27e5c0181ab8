"""
Headless Chrome helpers for the browser fetch strategy.

The job board answers plain HTTP clients with bot challenges from time
to time, so the browser strategy drives a real Chrome instance with a
random user agent and window size and the selenium-stealth patches
applied.  Navigation does not block on the page load event; instead the
DOM is read once the search results are present, which also covers
results rendered on the client after the load event.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional

from fake_useragent import UserAgent
from selenium import webdriver
from selenium.common.exceptions import TimeoutException
from selenium.webdriver.chrome.options import Options
from selenium.webdriver.chrome.service import Service
from selenium.webdriver.common.by import By
from selenium.webdriver.support import expected_conditions as EC
from selenium.webdriver.support.ui import WebDriverWait
from selenium_stealth import stealth
from webdriver_manager.chrome import ChromeDriverManager

logger = logging.getLogger(__name__)

Driver = webdriver.Chrome

SCREEN_SIZES: List[str] = [
    "1280x800",
    "1366x768",
    "1440x900",
    "1920x1080",
]
DEFAULT_TIMEOUT: float = 20.0
DEFAULT_POLL: float = 0.25


@dataclass
class BrowserConfig:
    """Settings for a single browser session."""

    user_agent: str
    screen_size: str
    headless: bool = True
    page_load_timeout: float = DEFAULT_TIMEOUT


def create_browser_config(headless: bool = True, timeout: float = DEFAULT_TIMEOUT) -> BrowserConfig:
    """Create a browser configuration with a random user agent and screen size."""
    return BrowserConfig(
        user_agent=UserAgent().random,
        screen_size=random.choice(SCREEN_SIZES),
        headless=headless,
        page_load_timeout=timeout,
    )


def setup_chrome_options(config: BrowserConfig) -> Options:
    options = Options()
    options.add_argument(f"user-agent={config.user_agent}")
    options.add_argument("--disable-blink-features=AutomationControlled")
    options.add_argument(f"--window-size={config.screen_size.replace('x', ',')}")
    options.add_experimental_option("excludeSwitches", ["enable-automation"])
    # get() returns immediately; readiness is awaited in navigate_and_get_html
    options.page_load_strategy = "none"
    if config.headless:
        options.add_argument("--headless=new")
    return options


def configure_stealth_settings(driver: Driver) -> None:
    """Apply anti-detection patches to the driver."""
    stealth(
        driver,
        languages=["en-GB", "en"],
        vendor="Google Inc.",
        platform="Win32",
        webgl_vendor="Intel Inc.",
        renderer="Intel Iris OpenGL Engine",
        fix_hairline=True,
    )


def init_browser(config: BrowserConfig) -> Driver:
    """Start a stealth-configured Chrome session.

    The session is quit again if configuring it fails, so no Chrome
    process outlives a failed start.
    """
    driver = webdriver.Chrome(
        service=Service(ChromeDriverManager().install()),
        options=setup_chrome_options(config),
    )
    try:
        driver.set_page_load_timeout(config.page_load_timeout)
        configure_stealth_settings(driver)
    except Exception:
        driver.quit()
        raise
    logger.debug("Started Chrome (%s, headless=%s)", config.screen_size, config.headless)
    return driver


def navigate_and_get_html(
    driver: Driver,
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    *,
    wait_selector: Optional[str] = None,
    poll_frequency: float = DEFAULT_POLL,
) -> str:
    """Navigate to ``url`` and return the DOM once ``wait_selector`` matches.

    If nothing matches ``wait_selector`` within ``timeout`` the DOM is
    returned as it stands; the parser then decides whether the page
    holds any results.  Without a selector the wait is for
    ``document.readyState == "complete"``.
    """
    if wait_selector:
        condition = EC.presence_of_element_located((By.CSS_SELECTOR, wait_selector))
    else:
        condition = _document_complete
    driver.get(url)
    try:
        WebDriverWait(driver, timeout, poll_frequency=poll_frequency).until(condition)
    except TimeoutException:
        logger.warning("Page %s not ready after %.1fs; using the DOM as loaded", url, timeout)
    return driver.page_source or ""


def _document_complete(driver: Driver) -> bool:
    return driver.execute_script("return document.readyState") == "complete"
