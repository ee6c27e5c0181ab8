"""Shared fixtures for the jobswipe test suite.

No test touches the network: job board pages come from fixture HTML or a
local aiohttp server, and LLM calls go through `FakeProvider`.
"""

from __future__ import annotations

import asyncio
import re
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Union

import pytest

from jobswipe.config import AIConfig
from jobswipe.normalize.schema import JobListing
from jobswipe.rank.llm_providers import LLMProvider
from jobswipe.resume.profile import CandidateProfile

FIXTURES = Path(__file__).parent / "fixtures"
ORIGIN = "https://www.jobs.ac.uk"

Reply = Union[str, Exception, Callable[[], Awaitable[str]]]


def result_block(
    title: Optional[str] = "Lecturer in Computer Science",
    href: Optional[str] = "/job/AAA111/lecturer",
    *,
    advert_id: Optional[str] = None,
    employer: Optional[str] = None,
    department: Optional[str] = None,
    info: Optional[str] = None,
    deadline: Optional[str] = None,
    logo: Optional[str] = None,
) -> str:
    """Render one search result container; ``None`` parts are left out."""
    attrs = f' data-advert-id="{advert_id}"' if advert_id else ""
    parts = []
    if logo is not None:
        parts.append(f'<div class="j-search-result__small-logo"><img src="{logo}"></div>')
    text = []
    if title is not None:
        href_attr = f' href="{href}"' if href is not None else ""
        text.append(f"<a{href_attr}>{title}</a>")
    if employer is not None:
        text.append(f'<div class="j-search-result__employer">{employer}</div>')
    if department is not None:
        text.append(f'<div class="j-search-result__department">{department}</div>')
    if info is not None:
        text.append(f'<div class="j-search-result__info">{info}</div>')
    if deadline is not None:
        text.append(f'<div class="j-search-result__date--blue">{deadline}</div>')
    parts.append(f'<div class="j-search-result__text">{"".join(text)}</div>')
    return f'<div class="j-search-result__result"{attrs}>{"".join(parts)}</div>'


def results_page(*blocks: str) -> str:
    return f"<html><body><main>{''.join(blocks)}</main></body></html>"


def make_job(job_id: str, title: str, score: float = 0, description: str = "") -> JobListing:
    return JobListing(
        id=job_id,
        title=title,
        link=f"{ORIGIN}/job/{job_id}/",
        source="jobs.ac.uk",
        match_score=score,
        description=description,
    )


class FakeProvider(LLMProvider):
    """LLM provider answering from a table keyed by job title.

    A reply can be a JSON string, an exception to raise, or a coroutine
    function to await (for slow or never-ending calls).
    """

    def __init__(self, replies: Dict[str, Reply], calls: List[str], closed: List[str]) -> None:
        self.replies = replies
        self.calls = calls
        self.closed = closed

    async def complete(self, messages, json_mode: bool = False) -> str:
        prompt = messages[-1]["content"]
        title = re.search(r"^Title: (.*)$", prompt, re.M).group(1)
        self.calls.append(title)
        reply = self.replies.get(title, '{"score": 50, "reason": "ok", "missing_skills": []}')
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return await reply()
        return reply

    async def aclose(self) -> None:
        self.closed.append("closed")


class FakeProviderFactory:
    """Provider factory recording every config it is asked to build."""

    def __init__(self, replies: Optional[Dict[str, Reply]] = None) -> None:
        self.replies = replies or {}
        self.calls: List[str] = []
        self.closed: List[str] = []
        self.configs: List[AIConfig] = []

    def __call__(self, config: AIConfig) -> FakeProvider:
        self.configs.append(config)
        return FakeProvider(self.replies, self.calls, self.closed)


async def never_returns() -> str:
    await asyncio.Event().wait()
    return ""


@pytest.fixture
def fixture_html() -> str:
    return (FIXTURES / "search_machine_learning.html").read_text(encoding="utf-8")


@pytest.fixture
def ml_profile() -> CandidateProfile:
    return CandidateProfile.from_dict({"skills": ["python", "ml"]})


@pytest.fixture
def academic_profile() -> CandidateProfile:
    return CandidateProfile.from_dict(
        {
            "personal": {"fullName": "Ada Byron", "summary": "Researcher in statistical machine learning."},
            "skills": ["Python", "PyTorch", "Bayesian inference"],
            "education": [
                {"degree": "PhD", "fieldOfStudy": "Computer Science", "institution": "UCL", "endDate": "2022"}
            ],
            "experience": [
                {
                    "role": "Research Fellow",
                    "company": "University of Oxford",
                    "duration": "2022-2025",
                    "description": "Probabilistic models for genomics.",
                }
            ],
            "publications": [{"title": "Variational inference at scale", "venue": "NeurIPS", "date": "2024"}],
            "awards": [{"title": "Best Paper"}],
        }
    )


@pytest.fixture
def ai_config() -> AIConfig:
    return AIConfig(provider="openai", api_key="sk-test", model="gpt-4o")


@pytest.fixture
def provider_factory() -> FakeProviderFactory:
    return FakeProviderFactory()
