"""
Command line interface for jobswipe.

Subcommands:

* ``search`` – Fetch the job board for a keyword and write the listings
  as JSON.
* ``match`` – Rank saved listings against a CV profile, print the
  ranking, then refine the top N with the configured LLM and print each
  update as it arrives.
* ``discover`` – ``search`` followed by ``match`` in one go.

Refinement needs an LLM credential (see `AIConfig.from_env`); without
one the deterministic ranking is still printed.  Ctrl-C during
refinement cancels the batch and keeps the scores gathered so far.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from typing import List, Optional

from .collect.fetchers import get_fetcher
from .collect.runner import search_jobs
from .config import AIConfig, Settings, load_settings
from .errors import ConfigurationError, TransportError
from .normalize.schema import JobListing
from .rank.aggregate import apply_match
from .rank.keyword_rank import rank_jobs
from .rank.llm_judge import refine_top_n
from .rank.llm_schema import MatchResult
from .resume.profile import CandidateProfile, load_profile

logger = logging.getLogger("jobswipe.cli")


def _load_jobs_json(path: str) -> List[JobListing]:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    rows = data.get("jobs", []) if isinstance(data, dict) else data
    return [JobListing.from_dict(row) for row in rows]


def _write_jobs_json(jobs: List[JobListing], path: str) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump({"jobs": [job.to_dict() for job in jobs]}, f, indent=2, ensure_ascii=False)


def _print_report(jobs: List[JobListing], limit: int) -> None:
    for i, job in enumerate(jobs[:limit]):
        employer = f" at {job.employer}" if job.employer else ""
        print(f"{i+1:02d}. {job.title}{employer} – {job.match_score:.0f}%")
        print(f"   {job.location or 'Location n/a'} | {job.salary} | closes {job.deadline or 'n/a'}")
        if job.match_reason:
            print(f"   Reason: {job.match_reason}")
        if job.missing_skills:
            print(f"   Missing: {', '.join(job.missing_skills)}")
        print(f"   {job.link}")
    print()


async def _refine(
    jobs: List[JobListing],
    profile: CandidateProfile,
    config: AIConfig,
    settings: Settings,
    top_n: int,
) -> List[JobListing]:
    batch = refine_top_n(profile, jobs, top_n, config=config, timeout=settings.ranking.judge_timeout)
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, batch.cancel)
    except (NotImplementedError, RuntimeError):
        pass  # no signal handlers on this platform

    ranked = jobs

    def on_result(job_id: str, result: MatchResult) -> None:
        nonlocal ranked
        print(f"[refined] {job_id}: {result.score:.0f}% – {result.reason}")
        ranked = apply_match(ranked, job_id, result)

    try:
        delivered = await batch.deliver(on_result)
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except (NotImplementedError, RuntimeError):
            pass
    if batch.cancelled:
        logger.info("Refinement cancelled after %d of %d results", delivered, len(batch.jobs))
    return ranked


def _match(jobs: List[JobListing], args: argparse.Namespace, settings: Settings) -> List[JobListing]:
    profile = load_profile(args.profile)
    ranked = rank_jobs(profile, jobs)
    _print_report(ranked, args.limit)
    top_n = settings.ranking.top_n if args.top_n is None else args.top_n
    if args.no_refine or top_n <= 0 or not ranked:
        return ranked
    try:
        ranked = asyncio.run(_refine(ranked, profile, AIConfig.from_env(), settings, top_n))
    except ConfigurationError as exc:
        logger.warning("Skipping AI refinement: %s", exc)
        return ranked
    _print_report(ranked, args.limit)
    return ranked


def _search(args: argparse.Namespace, settings: Settings) -> List[JobListing]:
    scraper = settings.scraper
    fetcher = get_fetcher(args.strategy or scraper.strategy, timeout=scraper.timeout, headless=scraper.headless)
    return asyncio.run(search_jobs(args.keyword, settings=scraper, fetcher=fetcher))


def cmd_search(args: argparse.Namespace, settings: Settings) -> None:
    """Search the job board and write listings JSON."""
    jobs = _search(args, settings)
    _write_jobs_json(jobs, args.out)
    logger.info("Wrote %d jobs to %s", len(jobs), args.out)


def cmd_match(args: argparse.Namespace, settings: Settings) -> None:
    """Rank listings JSON against a profile."""
    jobs = _load_jobs_json(args.jobs)
    ranked = _match(jobs, args, settings)
    if args.out:
        _write_jobs_json(ranked, args.out)
        logger.info("Wrote %d ranked jobs to %s", len(ranked), args.out)


def cmd_discover(args: argparse.Namespace, settings: Settings) -> None:
    """Search, rank and refine in one run."""
    jobs = _search(args, settings)
    if not jobs:
        logger.warning("No jobs found for %r", args.keyword)
        return
    ranked = _match(jobs, args, settings)
    if args.out:
        _write_jobs_json(ranked, args.out)
        logger.info("Wrote %d ranked jobs to %s", len(ranked), args.out)


def _add_match_arguments(cmd: argparse.ArgumentParser, *, jobs_required: bool) -> None:
    if jobs_required:
        cmd.add_argument("--jobs", required=True, help="Path to listings JSON written by 'search'")
    cmd.add_argument("--profile", required=True, help="Path to CV profile JSON")
    cmd.add_argument("--top-n", type=int, dest="top_n", help="Number of top jobs to refine with the LLM")
    cmd.add_argument("--no-refine", action="store_true", help="Skip LLM refinement")
    cmd.add_argument("--limit", type=int, default=20, help="Number of jobs to print")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="jobswipe", description="Academic job search and matching")
    parser.add_argument("--config", help="YAML settings file (defaults to the packaged config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    search_cmd = subparsers.add_parser("search", help="Search the job board")
    search_cmd.add_argument("--keyword", default="", help="Search keyword")
    search_cmd.add_argument("--strategy", choices=["http", "browser"], help="Fetch strategy")
    search_cmd.add_argument("--out", default="jobs.json", help="Output JSON path")
    search_cmd.set_defaults(func=cmd_search)

    match_cmd = subparsers.add_parser("match", help="Rank saved listings against a profile")
    _add_match_arguments(match_cmd, jobs_required=True)
    match_cmd.add_argument("--out", help="Optional output JSON path for the ranked listings")
    match_cmd.set_defaults(func=cmd_match)

    discover_cmd = subparsers.add_parser("discover", help="Search, rank and refine in one run")
    discover_cmd.add_argument("--keyword", default="", help="Search keyword")
    discover_cmd.add_argument("--strategy", choices=["http", "browser"], help="Fetch strategy")
    _add_match_arguments(discover_cmd, jobs_required=False)
    discover_cmd.add_argument("--out", help="Optional output JSON path for the ranked listings")
    discover_cmd.set_defaults(func=cmd_discover)

    args = parser.parse_args(argv)
    level = logging.DEBUG if args.verbose else getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")

    try:
        settings = load_settings(args.config)
        args.func(args, settings)
    except TransportError as exc:
        status = f" (status {exc.status})" if exc.status else ""
        logger.error("Failed to fetch jobs%s: %s", status, exc)
        return 2
    except ConfigurationError as exc:
        logger.error("%s", exc)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
