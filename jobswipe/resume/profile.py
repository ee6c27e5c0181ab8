"""
Candidate profile.

The CV document is owned by the surrounding application; the ranker
only reads it.  `CandidateProfile.from_dict` accepts the stored CV
document as-is (camelCase keys, personal details nested under
``personal``) and validates it into frozen dataclasses so nothing
downstream relies on untyped dictionaries.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Dict, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Education:
    degree: str
    field_of_study: str = ""
    institution: str = ""
    end_date: str = ""


@dataclass(frozen=True)
class Experience:
    role: str
    company: str = ""
    duration: str = ""
    description: str = ""


@dataclass(frozen=True)
class Publication:
    title: str
    venue: str = ""
    date: str = ""


@dataclass(frozen=True)
class CandidateProfile:
    """Structured CV used for matching.

    Collections are tuples so a profile can be shared between
    concurrent refinement tasks without anyone mutating it.
    """

    summary: str = ""
    skills: Tuple[str, ...] = ()
    education: Tuple[Education, ...] = ()
    experience: Tuple[Experience, ...] = ()
    publications: Tuple[Publication, ...] = ()
    awards: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "CandidateProfile":
        personal = data.get("personal") or {}
        summary = data.get("summary") or personal.get("summary") or ""
        education = tuple(
            Education(
                degree=_str(e.get("degree")),
                field_of_study=_str(e.get("fieldOfStudy", e.get("field_of_study", e.get("field")))),
                institution=_str(e.get("institution")),
                end_date=_str(e.get("endDate", e.get("end_date"))),
            )
            for e in data.get("education") or []
        )
        experience = tuple(
            Experience(
                role=_str(e.get("role")),
                company=_str(e.get("company")),
                duration=_str(e.get("duration")),
                description=_str(e.get("description")),
            )
            for e in data.get("experience") or []
        )
        publications = tuple(
            Publication(title=_str(p.get("title")), venue=_str(p.get("venue")), date=_str(p.get("date")))
            for p in data.get("publications") or []
        )
        awards = tuple(
            _str(a.get("title")) if isinstance(a, dict) else _str(a) for a in data.get("awards") or []
        )
        skills = tuple(s.strip() for s in (data.get("skills") or []) if isinstance(s, str) and s.strip())
        return cls(
            summary=_str(summary),
            skills=skills,
            education=education,
            experience=experience,
            publications=publications,
            awards=tuple(a for a in awards if a),
        )


def _str(value: object) -> str:
    return "" if value is None else str(value).strip()


def load_profile(path: str) -> CandidateProfile:
    """Load a CV document from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    profile = CandidateProfile.from_dict(data)
    logger.debug("Loaded profile with %d skills from %s", len(profile.skills), path)
    return profile
