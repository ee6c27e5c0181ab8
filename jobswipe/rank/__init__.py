"""
Ranking subsystem for jobswipe.

Ranking happens in two stages:

* `keyword_rank` – Deterministic token-overlap scoring of every listing
  against the candidate profile, used for the initial ordering.
* `llm_judge` – Optional background refinement of the top N listings by
  a language model, streamed back result by result.

`aggregate.apply_match` merges a refinement result into the displayed
list and `llm_providers` holds the provider-agnostic completion
boundary.
"""

from .keyword_rank import rank_jobs, score_of, sort_by_score, tokenize  # noqa: F401
from .llm_schema import MatchResult, parse_match_result  # noqa: F401
from .llm_judge import RefinementBatch, judge_job, refine_top_n  # noqa: F401
from .aggregate import apply_match  # noqa: F401
