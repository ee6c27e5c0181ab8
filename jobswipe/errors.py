"""
Exception types shared across the pipeline.

Structural drift on the job board (selectors matching nothing) is not
represented here: it is logged and yields an empty result list.
"""

from __future__ import annotations

from typing import Optional


class JobSwipeError(Exception):
    """Base class for all jobswipe errors."""


class TransportError(JobSwipeError):
    """The job site could not be fetched.

    Attributes:
        status: HTTP status returned upstream, when one was received.
        url: The URL that was being fetched.
    """

    def __init__(self, message: str, *, status: Optional[int] = None, url: Optional[str] = None) -> None:
        super().__init__(message)
        self.status = status
        self.url = url


class ProviderError(JobSwipeError):
    """An LLM completion failed or returned output that could not be parsed."""


class RefinementCancelled(JobSwipeError):
    """A refinement batch was cancelled before all of its results arrived."""


class ConfigurationError(JobSwipeError):
    """Required configuration (API key, provider, fetch strategy) is missing or invalid."""
