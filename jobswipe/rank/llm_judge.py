"""
LLM judging stage.

After the deterministic ranking has been shown to the user, the top N
listings are re-scored by a language model acting as an academic
recruiter.  `refine_top_n` returns a `RefinementBatch` that starts one
judgement per listing concurrently and yields ``(job_id, MatchResult)``
pairs in the order the calls finish, so each result can be applied on
its own.

Failures are isolated: a call that errors, times out or returns
unusable JSON yields `MatchResult.fallback()` for that listing and the
others carry on.  `RefinementBatch.cancel` is the one cancellation
handle for the whole batch; it aborts the in-flight requests and ends
iteration quietly.
"""

from __future__ import annotations

import asyncio
import functools
import inspect
import json
import logging
from typing import AsyncIterator, Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import AIConfig
from ..errors import ConfigurationError, ProviderError, RefinementCancelled
from ..normalize.schema import JobListing
from ..resume.profile import CandidateProfile
from .llm_providers import ProviderFactory, complete, get_provider, resolve_config, validate_config
from .llm_schema import MatchResult, parse_match_result

logger = logging.getLogger(__name__)

DEFAULT_TOP_N = 3
DEFAULT_TIMEOUT = 30.0

Judge = Callable[[JobListing], Awaitable[MatchResult]]
ResultCallback = Callable[[str, MatchResult], object]

_JOB_PROMPT_FIELDS = ("id", "title", "employer", "location", "salary", "deadline", "link", "source", "description")


def build_match_prompt(job: JobListing, profile: CandidateProfile) -> str:
    """Build the recruiter prompt comparing ``profile`` with ``job``."""
    education = "; ".join(
        f"{e.degree} in {e.field_of_study} at {e.institution} ({e.end_date})" for e in profile.education
    )
    experience = "\n".join(
        f"Role: {e.role} at {e.company} ({e.duration}). Details: {e.description}" for e in profile.experience
    )
    publications = "; ".join(f"{p.title} ({p.venue}, {p.date})" for p in profile.publications)
    job_details = json.dumps({key: getattr(job, key) for key in _JOB_PROMPT_FIELDS}, ensure_ascii=False)
    return f"""
You are a strict and honest Academic Recruiter. Your task is to critically evaluate the match between a candidate's CV and a Job Description.

JOB DETAILS:
Title: {job.title}
Employer: {job.employer}
Description: {job_details}

CANDIDATE CV:
Summary: {profile.summary}
Skills: {", ".join(profile.skills)}
Education: {education}
Experience: {experience}
Publications: {publications}
Awards: {", ".join(profile.awards)}

INSTRUCTIONS:
1. Analyze the overlap in Research Interests, Technical Skills, and Education Level.
2. Be critical. If the job requires a PhD and the candidate has a BSc, penalize heavily.
3. If the research area (e.g., "Machine Learning") matches but the specific niche (e.g., "Reinforcement Learning") is missing, note it.

OUTPUT FORMAT (JSON ONLY):
{{
    "score": <number 0-100>,
    "reason": "<One concise sentence limiting to 20 words explaining the score. Be direct.>",
    "missing_skills": ["<skill1>", "<skill2>"]
}}
"""


async def judge_job(
    job: JobListing,
    *,
    profile: CandidateProfile,
    config: AIConfig,
    timeout: float = DEFAULT_TIMEOUT,
    provider_factory: ProviderFactory = get_provider,
) -> MatchResult:
    """Ask the LLM to score one listing; never raises except on cancellation."""
    messages = [{"role": "user", "content": build_match_prompt(job, profile)}]
    try:
        text = await asyncio.wait_for(
            complete(config, messages, json_mode=True, provider_factory=provider_factory),
            timeout,
        )
        result = parse_match_result(text)
    except asyncio.TimeoutError:
        logger.warning("AI match for %s timed out after %.1fs", job.id, timeout)
        return MatchResult.fallback()
    except (ProviderError, ConfigurationError) as exc:
        logger.warning("AI match for %s failed: %s", job.id, exc)
        return MatchResult.fallback()
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unexpected error during AI match for %s: %s", job.id, exc)
        return MatchResult.fallback()
    logger.debug("AI match for %s: %.0f (%s)", job.id, result.score, result.reason)
    return result


class RefinementBatch:
    """Concurrent LLM judgements over a fixed set of listings.

    Iterate with ``async for job_id, result in batch`` (ideally inside
    ``async with batch:`` so leftover calls are aborted on exit), or use
    `deliver` / `gather`.  A batch can be consumed once.
    """

    def __init__(self, jobs: Iterable[JobListing], judge: Judge) -> None:
        self.jobs: List[JobListing] = list(jobs)
        self._judge = judge
        self._tasks: List[asyncio.Task] = []
        self._cancelled = False
        self._started = False

    @property
    def job_ids(self) -> List[str]:
        return [job.id for job in self.jobs]

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop delivering results and abort every call still in flight."""
        if self._cancelled:
            return
        self._cancelled = True
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        logger.debug("Refinement batch cancelled with %d calls in flight", len(pending))

    async def _run(self, job: JobListing) -> Tuple[str, MatchResult]:
        return job.id, await self._judge(job)

    async def _shutdown(self) -> None:
        pending = [task for task in self._tasks if not task.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

    async def _stream(self) -> AsyncIterator[Tuple[str, MatchResult]]:
        if self._started:
            raise RuntimeError("A refinement batch can only be consumed once")
        self._started = True
        if self._cancelled:
            return
        self._tasks = [asyncio.ensure_future(self._run(job)) for job in self.jobs]
        try:
            for next_done in asyncio.as_completed(self._tasks):
                try:
                    job_id, result = await next_done
                except asyncio.CancelledError:
                    if self._cancelled:
                        return
                    raise
                if self._cancelled:
                    return
                yield job_id, result
        finally:
            await self._shutdown()

    def __aiter__(self) -> AsyncIterator[Tuple[str, MatchResult]]:
        return self._stream()

    async def __aenter__(self) -> "RefinementBatch":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self._shutdown()

    async def deliver(self, on_result: ResultCallback) -> int:
        """Call ``on_result(job_id, result)`` for each result as it arrives.

        The callback may be a coroutine function and may call `cancel`.

        Returns:
            The number of results delivered.
        """
        delivered = 0
        stream = self._stream()
        try:
            async for job_id, result in stream:
                outcome = on_result(job_id, result)
                if inspect.isawaitable(outcome):
                    await outcome
                delivered += 1
        finally:
            await stream.aclose()
        return delivered

    async def gather(self) -> Dict[str, MatchResult]:
        """Wait for every result.

        Raises:
            RefinementCancelled: If the batch was cancelled first.
        """
        results: Dict[str, MatchResult] = {}
        stream = self._stream()
        try:
            async for job_id, result in stream:
                results[job_id] = result
        finally:
            await stream.aclose()
        if self._cancelled and len(results) < len(self.jobs):
            raise RefinementCancelled(f"Refinement cancelled after {len(results)} of {len(self.jobs)} results")
        return results


def refine_top_n(
    profile: CandidateProfile,
    jobs: Iterable[JobListing],
    n: int = DEFAULT_TOP_N,
    *,
    config: AIConfig,
    timeout: float = DEFAULT_TIMEOUT,
    provider_factory: Optional[ProviderFactory] = None,
) -> RefinementBatch:
    """Prepare LLM refinement for the first ``n`` of an already sorted list.

    Nothing is sent until the returned batch is consumed.

    Raises:
        ConfigurationError: Immediately, if ``config`` has no API key or
            names an unsupported provider.
    """
    validate_config(resolve_config(config))
    selected = list(jobs)[: max(n, 0)]
    judge = functools.partial(
        judge_job,
        profile=profile,
        config=config,
        timeout=timeout,
        provider_factory=provider_factory or get_provider,
    )
    logger.info("Refining top %d of the ranked jobs with %s", len(selected), config.provider)
    return RefinementBatch(selected, judge)
