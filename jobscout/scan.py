"""
Scan pipeline.

Runs: aggregate candidates across sources → score each one sequentially
(with a fixed pause between LLM calls) → sort by score → one batch upsert.
A scan is all-or-nothing: if any score call fails, nothing is persisted.
"""
from __future__ import annotations

import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Sequence

from jobscout.aggregator import aggregate
from jobscout.errors import ScanFailed, is_rate_limited
from jobscout.log import get_logger
from jobscout.models import CandidateJob, MasterProfile, ScoredMatch, SearchStrategy, UserSettings
from jobscout.scorer import Scorer
from jobscout.sources.base import JobSource
from jobscout.store import MatchStore, utcnow

log = get_logger(__name__)

DEFAULT_KEYWORDS = "software engineer"
DEFAULT_LOCATION = "Remote"


@dataclass
class ScanResult:
    keywords: str
    location: str
    candidate_count: int
    matches: list[ScoredMatch] = field(default_factory=list)
    saved: int = 0

    @property
    def by_source(self) -> dict[str, int]:
        return dict(Counter(m.source for m in self.matches))


def resolve_scan_terms(
    settings: UserSettings | None,
    profile: MasterProfile,
    keywords: str | None = None,
    location: str | None = None,
) -> tuple[str, str]:
    """Explicit terms win, then stored scan settings, then profile-derived defaults."""
    kw = (keywords or "").strip()
    if not kw and settings is not None:
        kw = settings.scan_keywords.strip()
    if not kw and profile.skills:
        kw = profile.skills[0]
    loc = (location or "").strip()
    if not loc and settings is not None:
        loc = settings.scan_location.strip()
    return kw or DEFAULT_KEYWORDS, loc or DEFAULT_LOCATION


class ScanOrchestrator:
    def __init__(
        self,
        scorer: Scorer,
        store: MatchStore,
        sources: Sequence[JobSource],
        *,
        delay_seconds: float = 0.8,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.scorer = scorer
        self.store = store
        self.sources = list(sources)
        self.delay_seconds = delay_seconds
        self.sleep = sleep
        self.clock = clock

    def score_all(
        self,
        profile: MasterProfile,
        strategy: SearchStrategy,
        candidates: Sequence[CandidateJob],
    ) -> list[ScoredMatch]:
        """Score one candidate at a time, in order, pausing between calls.

        Returns matches sorted by score descending; ties keep scan order.
        """
        scored: list[ScoredMatch] = []
        total = len(candidates)
        for i, job in enumerate(candidates):
            log.debug("Scoring match %d of %d: %s @ %s", i + 1, total, job.title, job.company)
            match = self.scorer.score(profile, strategy, job)
            match.source = job.source_tag
            match.created_at = self.clock()
            scored.append(match)
            if i < total - 1:
                self.sleep(self.delay_seconds)
        return sorted(scored, key=lambda m: m.score, reverse=True)

    def run(
        self,
        user_id: str,
        profile: MasterProfile,
        strategy: SearchStrategy,
        keywords: str,
        location: str,
    ) -> ScanResult:
        found = aggregate(keywords, location, self.sources)
        candidates = [job for job in found if job.title.strip() or job.company.strip()]
        if len(candidates) < len(found):
            log.warning("Skipped %d postings with neither title nor company", len(found) - len(candidates))
        if not candidates:
            log.warning("No jobs found from any source for %r in %r", keywords, location)
            return ScanResult(keywords, location, 0)

        try:
            ranked = self.score_all(profile, strategy, candidates)
        except Exception as exc:
            rate_limited = is_rate_limited(exc)
            log.error(
                "Scan aborted after scoring failure (%s): %s",
                "rate limited" if rate_limited else type(exc).__name__,
                exc,
            )
            raise ScanFailed(rate_limited) from exc

        valid = [m for m in ranked if m.title or m.company]
        if len(valid) < len(ranked):
            log.warning("Dropped %d matches with neither title nor company", len(ranked) - len(valid))

        saved = self.store.upsert_matches(user_id, valid)
        result = ScanResult(keywords, location, len(candidates), valid, saved)
        log.info(
            "Scan complete — candidates=%d, saved=%d, top score=%s",
            result.candidate_count,
            saved,
            valid[0].score if valid else "n/a",
        )
        return result

    def scan_user(self, user_id: str, keywords: str | None = None, location: str | None = None) -> ScanResult:
        """Scan with the user's stored profile, strategy and scan settings."""
        loaded = self.store.load_profile(user_id)
        strategy = self.store.load_strategy(user_id)
        if loaded is None or strategy is None:
            raise ValueError(f"User {user_id} needs a profile and a strategy before scanning")
        profile, _ = loaded
        kw, loc = resolve_scan_terms(self.store.load_settings(user_id), profile, keywords, location)
        return self.run(user_id, profile, strategy, kw, loc)
