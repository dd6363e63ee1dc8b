"""Data models for candidate jobs, scored matches, profiles and digest settings."""
from __future__ import annotations

import hashlib
import math
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from jobscout.errors import InvalidResponse, InvalidTransition

FRACTIONAL_SCORE_CEILING = 1.5


class SourceTag(str, Enum):
    LINKEDIN = "linkedin"  # LLM-grounded live search
    ARBEITSAGENTUR = "arbeitsagentur"
    JSEARCH = "jsearch"
    MANUAL = "manual"
    MOCK = "mock"


class MatchStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DISMISSED = "dismissed"


ALLOWED_TRANSITIONS: dict[MatchStatus, set[MatchStatus]] = {
    MatchStatus.PENDING: {MatchStatus.ACCEPTED, MatchStatus.DISMISSED},
    MatchStatus.ACCEPTED: {MatchStatus.PENDING},
    MatchStatus.DISMISSED: set(),
}


def check_transition(current: MatchStatus, new: MatchStatus) -> None:
    if current == new:
        return
    if new not in ALLOWED_TRANSITIONS[current]:
        raise InvalidTransition(f"Cannot move a {current.value} match to {new.value}")


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def normalize_score(raw: Any) -> int:
    """Bring a score onto the 0-100 scale.

    Some producers emit 0-1 fractions: anything <= 1.5 is treated as a
    fraction and multiplied by 100, anything above is only rounded.
    Missing or non-numeric scores count as 0.
    """
    if not _is_number(raw):
        return 0
    if raw <= FRACTIONAL_SCORE_CEILING:
        return round(raw * 100)
    return round(raw)


def coerce_score(raw: Any) -> int:
    """normalize_score clamped into [0, 100]."""
    return max(0, min(100, normalize_score(raw)))


def str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value if v is not None]


def make_match_id(source: str, external_id: str) -> str:
    """Stable row id for one external posting; re-scans upsert the same row."""
    return hashlib.sha256(f"{source}:{external_id}".encode()).hexdigest()[:16]


@dataclass(frozen=True)
class CandidateJob:
    external_id: str
    title: str
    company: str
    location: str
    description: str
    link: str
    source_tag: str = ""

    @property
    def match_id(self) -> str:
        return make_match_id(self.source_tag or SourceTag.MANUAL.value, self.external_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            "externalId": self.external_id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "link": self.link,
            "source": self.source_tag,
        }


@dataclass
class Reasoning:
    pros: list[str] = field(default_factory=list)
    cons: list[str] = field(default_factory=list)
    risk_factors: list[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "Reasoning":
        if not isinstance(raw, dict):
            return cls()
        return cls(
            pros=str_list(raw.get("pros")),
            cons=str_list(raw.get("cons")),
            risk_factors=str_list(raw.get("riskFactors")),
        )

    def to_dict(self) -> dict[str, list[str]]:
        return {"pros": self.pros, "cons": self.cons, "riskFactors": self.risk_factors}


@dataclass
class ScoredMatch:
    id: str
    title: str
    company: str
    location: str
    description: str
    link: str
    score: float
    reasoning: Reasoning = field(default_factory=Reasoning)
    source: str = SourceTag.MANUAL.value
    status: MatchStatus = MatchStatus.PENDING
    created_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "company": self.company,
            "location": self.location,
            "description": self.description,
            "link": self.link,
            "score": self.score,
            "reasoning": self.reasoning.to_dict(),
            "source": self.source,
            "status": self.status.value,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


# ── Profile & strategy ─────────────────────────────────────────────────


@dataclass
class Experience:
    role: str
    company: str
    highlights: list[str] = field(default_factory=list)


@dataclass
class MasterProfile:
    name: str = "Unknown"
    summary: str = ""
    skills: list[str] = field(default_factory=list)
    experience: list[Experience] = field(default_factory=list)
    hidden_strengths: list[str] = field(default_factory=list)

    @classmethod
    def from_raw(cls, raw: Any) -> "MasterProfile":
        if not isinstance(raw, dict):
            raise InvalidResponse(f"Profile must be a JSON object, got {type(raw).__name__}")
        experience = []
        for item in raw.get("experience") or []:
            if not isinstance(item, dict):
                continue
            experience.append(
                Experience(
                    role=str(item.get("role") or ""),
                    company=str(item.get("company") or ""),
                    highlights=str_list(item.get("highlights")),
                )
            )
        return cls(
            name=str(raw.get("name") or "Unknown"),
            summary=str(raw.get("summary") or ""),
            skills=str_list(raw.get("skills")),
            experience=experience,
            hidden_strengths=str_list(raw.get("hiddenStrengths")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "summary": self.summary,
            "skills": self.skills,
            "experience": [asdict(e) for e in self.experience],
            "hiddenStrengths": self.hidden_strengths,
        }


LOCATION_PREFERENCES = ("remote", "hybrid", "onsite", "flexible")


@dataclass
class SearchStrategy:
    priorities: list[str] = field(default_factory=list)
    dealbreakers: list[str] = field(default_factory=list)
    preferred_industries: list[str] = field(default_factory=list)
    location_preference: str = "flexible"
    seniority_level: str = "mid-level"

    @classmethod
    def from_raw(cls, raw: Any) -> "SearchStrategy":
        if not isinstance(raw, dict):
            raise InvalidResponse(f"Strategy must be a JSON object, got {type(raw).__name__}")
        location = str(raw.get("locationPreference") or "flexible").lower()
        if location not in LOCATION_PREFERENCES:
            location = "flexible"
        return cls(
            priorities=str_list(raw.get("priorities")),
            dealbreakers=str_list(raw.get("dealbreakers")),
            preferred_industries=str_list(raw.get("preferredIndustries")),
            location_preference=location,
            seniority_level=str(raw.get("seniorityLevel") or "mid-level"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "priorities": self.priorities,
            "dealbreakers": self.dealbreakers,
            "preferredIndustries": self.preferred_industries,
            "locationPreference": self.location_preference,
            "seniorityLevel": self.seniority_level,
        }


# ── Settings & digest ──────────────────────────────────────────────────


@dataclass
class UserSettings:
    user_id: str
    automation_enabled: bool = True
    match_threshold: float = 80
    scan_keywords: str = ""
    scan_location: str = "Remote"
    digest_email: str = ""
    display_name: str = ""
    timezone: str = ""
    last_digest_sent_at: datetime | None = None


@dataclass
class DigestRequest:
    """Caller overrides for one digest run."""

    email: str | None = None
    threshold: float | None = None
    test: bool = False
    check: bool = False


@dataclass
class DigestSnapshot:
    recipient_email: str
    effective_threshold: float
    since: datetime | None
    total_fetched: int
    highest_score: int | None
    matches: list[ScoredMatch] = field(default_factory=list)
    used_mock_data: bool = False
