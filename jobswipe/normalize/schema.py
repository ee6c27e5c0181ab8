"""
Normalized job listing schema.

`JobListing` is the record produced by the extractor.  Its identity
fields (``id``, ``link`` and ``title``) are write-once; the ranker only
ever touches ``match_score``, ``match_reason`` and ``missing_skills``.
`to_dict` and `from_dict` use the camelCase keys the surrounding
application stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_SALARY = "Competitive"

_IDENTITY_FIELDS = frozenset({"id", "link", "title"})

# Python attribute -> stored key
_WIRE_KEYS = {
    "id": "id",
    "title": "title",
    "employer": "employer",
    "location": "location",
    "salary": "salary",
    "deadline": "deadline",
    "link": "link",
    "image_url": "imageUrl",
    "source": "source",
    "match_score": "matchScore",
    "description": "description",
    "match_reason": "matchReason",
    "missing_skills": "missingSkills",
}


@dataclass
class JobListing:
    id: str
    title: str
    link: str
    source: str
    match_score: float
    employer: str = ""
    location: str = ""
    salary: str = DEFAULT_SALARY
    deadline: str = ""
    image_url: Optional[str] = None
    description: str = ""
    match_reason: Optional[str] = None
    missing_skills: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise ValueError("JobListing requires a non-empty title")

    def __setattr__(self, name: str, value: object) -> None:
        if name in _IDENTITY_FIELDS and name in self.__dict__:
            raise AttributeError(f"JobListing.{name} cannot be changed once set")
        super().__setattr__(name, value)

    def to_dict(self) -> Dict[str, object]:
        data = {wire: getattr(self, attr) for attr, wire in _WIRE_KEYS.items()}
        data["missingSkills"] = list(self.missing_skills)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "JobListing":
        """Rebuild a listing from its stored form.

        Raises:
            ValueError: If the title is missing or empty.
        """
        kwargs = {}
        for attr, wire in _WIRE_KEYS.items():
            if wire in data:
                kwargs[attr] = data[wire]
        kwargs.setdefault("id", "")
        kwargs.setdefault("title", "")
        kwargs.setdefault("link", "")
        kwargs.setdefault("source", "")
        kwargs.setdefault("match_score", 0)
        kwargs["id"] = str(kwargs["id"])
        if kwargs.get("salary") in (None, ""):
            kwargs["salary"] = DEFAULT_SALARY
        kwargs["missing_skills"] = list(kwargs.get("missing_skills") or [])
        return cls(**kwargs)
