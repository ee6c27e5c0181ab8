"""
Search results HTML to listings.

Parses a jobs.ac.uk search results page into `JobListing` records using
BeautifulSoup CSS selectors.  Missing sub-elements never abort a
record: employer, location and deadline default to an empty string and
salary to ``"Competitive"``.  Only a missing title causes a result to
be skipped.  When the page contains no result containers at all the
markup has most likely changed; that is logged and an empty list is
returned so the rest of the pipeline stays available.
"""

from __future__ import annotations

import logging
import random
import re
from typing import List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

from .schema import DEFAULT_SALARY, JobListing

logger = logging.getLogger(__name__)

RESULT_SELECTOR = ".j-search-result__result"
TITLE_SELECTOR = ".j-search-result__text a"
EMPLOYER_SELECTOR = ".j-search-result__employer"
LOCATION_SELECTOR = ".j-search-result__department"
INFO_SELECTOR = ".j-search-result__info"
DEADLINE_SELECTOR = ".j-search-result__date--blue"
LOGO_SELECTOR = ".j-search-result__small-logo img"

_SALARY_RE = re.compile(r"Salary:\s*(.+)", re.I)
_WS_RE = re.compile(r"\s+")

# Placeholder score range assigned before any ranking runs.
PLACEHOLDER_SCORE_RANGE = (85, 100)


def resolve_url(origin: str, href: Optional[str]) -> str:
    """Resolve a site-relative path against the site origin.

    Paths starting with ``/`` are joined to ``origin``; anything else
    (normally an absolute URL) is returned unchanged.
    """
    if not href:
        return ""
    href = href.strip()
    if href.startswith("//"):
        return f"{urlparse(origin).scheme or 'https'}:{href}"
    if href.startswith("/"):
        return origin.rstrip("/") + href
    return href


def _text(container: Tag, selector: str) -> str:
    node = container.select_one(selector)
    if node is None:
        return ""
    return _WS_RE.sub(" ", node.get_text(" ", strip=True)).strip()


def _salary(container: Tag) -> str:
    info = _text(container, INFO_SELECTOR)
    match = _SALARY_RE.search(info)
    if match:
        salary = match.group(1).strip()
        if salary:
            return salary
    return DEFAULT_SALARY


def _id_from_link(href: str) -> Optional[str]:
    # Detail pages look like /job/<advert id>/<slug>
    parts = urlparse(href).path.split("/")
    if len(parts) > 2 and parts[2]:
        return parts[2]
    return None


def parse_listings(
    html: str,
    *,
    origin: str,
    source: str,
    rng: Optional[random.Random] = None,
) -> List[JobListing]:
    """Extract job listings from a search results page.

    Args:
        html: Raw HTML of the results page.
        origin: Site origin used to absolutise relative links.
        source: Identifier stored on every listing (e.g. ``jobs.ac.uk``).
        rng: Random generator for the placeholder match score.

    Returns:
        Listings in document order.  Empty if no result containers were
        found.
    """
    rng = rng or random.Random()
    soup = BeautifulSoup(html, "html.parser")
    containers = soup.select(RESULT_SELECTOR)
    if not containers:
        logger.warning("No result containers matched %r; page structure may have changed", RESULT_SELECTOR)
        return []

    listings: List[JobListing] = []
    for index, container in enumerate(containers):
        anchor = container.select_one(TITLE_SELECTOR)
        title = _WS_RE.sub(" ", anchor.get_text(" ", strip=True)).strip() if anchor else ""
        if not title:
            logger.debug("Skipping result %d without a title", index)
            continue
        href = anchor.get("href") if anchor else None
        link = resolve_url(origin, href)

        advert_id = container.get("data-advert-id")
        job_id = advert_id or (href and _id_from_link(href)) or f"job-{index}"

        logo = container.select_one(LOGO_SELECTOR)
        logo_src = logo.get("src") if logo is not None else None

        listings.append(
            JobListing(
                id=str(job_id),
                title=title,
                link=link,
                source=source,
                match_score=rng.randrange(*PLACEHOLDER_SCORE_RANGE),
                employer=_text(container, EMPLOYER_SELECTOR),
                location=_text(container, LOCATION_SELECTOR),
                salary=_salary(container),
                deadline=_text(container, DEADLINE_SELECTOR),
                image_url=resolve_url(origin, logo_src) or None,
            )
        )
    logger.debug("Parsed %d listings from %d result containers", len(listings), len(containers))
    return listings
