"""
Deterministic keyword ranking.

Scores each listing against the candidate profile by token overlap so
that results can be ordered before any network-bound refinement starts.
Profile tokens carry a weight depending on where they come from (skills
count most, then degrees and roles, then free text).  The score blends
two signals:

* the summed profile weight of the listing tokens found in the profile,
  saturating through ``1 - exp(-W / 6)``;
* the share of listing tokens covered by the profile.

A listing sharing no tokens with the profile scores 0.  Weights are
heuristic and can be tuned; only the properties (range 0-100, purity,
monotonic in overlap, zero for no overlap) matter to callers.
"""

from __future__ import annotations

import logging
import math
import re
from typing import Dict, Iterable, List

from ..normalize.schema import JobListing
from ..resume.profile import CandidateProfile

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9+#]*")

STOPWORDS = frozenset(
    """
    a an and are as at be by for from in into is it of on or our the to with within
    we you your their this that will who all any can its not has have per via
    job jobs role post position vacancy opportunity
    """.split()
)

# Abbreviations common in academic adverts, matched in both directions.
ALIASES: Dict[str, str] = {
    "ml": "machine learning",
    "ai": "artificial intelligence",
    "dl": "deep learning",
    "rl": "reinforcement learning",
    "nlp": "natural language processing",
    "hci": "human computer interaction",
    "cv": "computer vision",
}

SKILL_WEIGHT = 3.0
QUALIFICATION_WEIGHT = 2.0
TEXT_WEIGHT = 1.0

_SATURATION = 6.0
_WEIGHT_SHARE = 0.6
_COVERAGE_SHARE = 0.4


def _keep(token: str) -> bool:
    return len(token) > 1 and not token.isdigit() and token not in STOPWORDS


def tokenize(text: str) -> List[str]:
    """Split text into unique lowercase tokens, expanding known aliases."""
    words = _TOKEN_RE.findall((text or "").lower())
    tokens = list(dict.fromkeys(w for w in words if _keep(w)))
    padded = f" {' '.join(words)} "
    for abbr, phrase in ALIASES.items():
        if abbr not in tokens and f" {phrase} " in padded:
            tokens.append(abbr)
        if abbr in tokens:
            tokens.extend(w for w in phrase.split() if _keep(w) and w not in tokens)
    return tokens


def profile_weights(profile: CandidateProfile) -> Dict[str, float]:
    """Map every profile token to the highest weight it appears with."""
    weights: Dict[str, float] = {}

    def add(texts: Iterable[str], weight: float) -> None:
        for text in texts:
            for token in tokenize(text):
                if weights.get(token, 0.0) < weight:
                    weights[token] = weight

    add(profile.skills, SKILL_WEIGHT)
    add((e.degree for e in profile.education), QUALIFICATION_WEIGHT)
    add((e.field_of_study for e in profile.education), QUALIFICATION_WEIGHT)
    add((e.role for e in profile.experience), QUALIFICATION_WEIGHT)
    add([profile.summary], TEXT_WEIGHT)
    add((e.description for e in profile.experience), TEXT_WEIGHT)
    add((p.title for p in profile.publications), TEXT_WEIGHT)
    return weights


def _score(weights: Dict[str, float], job: JobListing) -> int:
    job_tokens = tokenize(f"{job.title} {job.description}")
    matched = [t for t in job_tokens if t in weights]
    if not matched:
        return 0
    weight = sum(weights[t] for t in matched)
    coverage = len(matched) / len(job_tokens)
    raw = 100 * (_WEIGHT_SHARE * (1 - math.exp(-weight / _SATURATION)) + _COVERAGE_SHARE * coverage)
    return max(0, min(100, int(round(raw))))


def score_of(profile: CandidateProfile, job: JobListing) -> int:
    """Return the deterministic relevance of ``job`` to ``profile`` (0-100)."""
    return _score(profile_weights(profile), job)


def sort_by_score(jobs: Iterable[JobListing]) -> List[JobListing]:
    """Sort by descending match score; equal scores keep their order."""
    return sorted(jobs, key=lambda job: job.match_score, reverse=True)


def rank_jobs(profile: CandidateProfile, jobs: Iterable[JobListing]) -> List[JobListing]:
    """Overwrite each listing's placeholder score and return them sorted.

    Args:
        profile: Candidate profile (not modified).
        jobs: Listings in extraction order.

    Returns:
        A new list ordered by descending score, ties in input order.
    """
    weights = profile_weights(profile)
    jobs = list(jobs)
    for job in jobs:
        job.match_score = _score(weights, job)
    ranked = sort_by_score(jobs)
    logger.info("Ranked %d jobs against %d profile tokens", len(ranked), len(weights))
    return ranked
