"""
Merge refinement results into a ranked list.

Refinement results arrive one at a time and out of order.  `apply_match`
folds a single result into the listings the caller is showing and
returns them re-sorted, keeping the descending-score ordering invariant.
Fallback results (score 0) leave the deterministic score untouched so a
failed judgement never demotes a listing.
"""

from __future__ import annotations

import logging
from typing import Iterable, List

from ..normalize.schema import JobListing
from .keyword_rank import sort_by_score
from .llm_schema import MatchResult

logger = logging.getLogger(__name__)


def apply_match(jobs: Iterable[JobListing], job_id: str, result: MatchResult) -> List[JobListing]:
    """Apply ``result`` to the listing with ``job_id`` and re-sort.

    Args:
        jobs: Listings currently shown, in their current order.
        job_id: Listing the result belongs to.  Unknown ids are ignored.
        result: Refinement result for that listing.

    Returns:
        A new list sorted by descending score, ties in current order.
    """
    jobs = list(jobs)
    if result.score <= 0:
        logger.debug("Keeping deterministic score for %s (no usable AI score)", job_id)
        return jobs
    for job in jobs:
        if job.id == job_id:
            job.match_score = result.score
            job.match_reason = result.reason
            job.missing_skills = list(result.missing_skills)
            break
    else:
        logger.debug("Ignoring match for unknown job %s", job_id)
        return jobs
    return sort_by_score(jobs)
