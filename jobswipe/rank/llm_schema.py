"""
LLM judgement schema.

Defines `MatchResult`, the outcome of asking a language model how well
a candidate fits a listing, and the parser for the model's JSON reply.
The model is asked for ``{"score": 0-100, "reason": str,
"missing_skills": [str]}``.  Only the shape is checked: the score is
trusted to be in range and treated as 0 when absent.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from typing import List

from ..errors import ProviderError

FALLBACK_REASON = "Failed to calculate match."


@dataclass(frozen=True)
class MatchResult:
    """Result of an LLM job match evaluation."""

    score: float
    reason: str
    missing_skills: List[str] = field(default_factory=list)

    @classmethod
    def fallback(cls) -> "MatchResult":
        return cls(score=0, reason=FALLBACK_REASON, missing_skills=[])


def _strip_code_fence(text: str) -> str:
    text = text.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        if text.rstrip().endswith("```"):
            text = text.rstrip()[:-3]
    return text.strip()


def parse_match_result(text: str) -> MatchResult:
    """Parse a model reply into a `MatchResult`.

    Raises:
        ProviderError: If the reply is not a JSON object or its fields
            have the wrong types.
    """
    try:
        data = json.loads(_strip_code_fence(text or ""))
    except json.JSONDecodeError as exc:
        raise ProviderError(f"Match reply is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ProviderError(f"Match reply is a JSON {type(data).__name__}, expected an object")

    raw_score = data.get("score", 0)
    if raw_score is None:
        raw_score = 0
    if isinstance(raw_score, bool):
        raise ProviderError("Match score must be a number")
    try:
        score = float(raw_score)
    except (TypeError, ValueError) as exc:
        raise ProviderError(f"Match score {raw_score!r} is not a number") from exc
    if not math.isfinite(score):
        raise ProviderError(f"Match score {raw_score!r} is not a finite number")

    missing = data.get("missing_skills") or []
    if not isinstance(missing, list):
        raise ProviderError("missing_skills must be a list")
    reason = data.get("reason") or ""
    return MatchResult(score=score, reason=str(reason), missing_skills=[str(s) for s in missing])
