"""
Normalization subsystem for jobswipe.

This package converts a job board's search results markup into
structured `JobListing` instances.  The record layout is defined by the
`JobListing` dataclass in `schema.py`; the jobs.ac.uk selectors live in
`html_to_listings.py`.
"""

from .schema import JobListing  # noqa: F401
from .html_to_listings import parse_listings, resolve_url  # noqa: F401
