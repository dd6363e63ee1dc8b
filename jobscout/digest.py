"""
Digest selection.

Decides who a digest goes to, which threshold applies, which time window
is covered and which stored matches make the cut.  Nothing here sends
email or writes to the store.
"""
from __future__ import annotations

from dataclasses import replace
from datetime import datetime, timedelta

from jobscout.errors import NoRecipientConfigured
from jobscout.log import get_logger
from jobscout.models import (
    DigestRequest,
    DigestSnapshot,
    Reasoning,
    ScoredMatch,
    SourceTag,
    UserSettings,
    normalize_score,
)
from jobscout.store import MatchStore, utcnow

log = get_logger(__name__)

DEFAULT_THRESHOLD = 80
BATCH_LIMIT = 50
FIRST_RUN_WINDOW = timedelta(hours=24)

# Shown in preview digests when the user has nothing stored yet
MOCK_MATCHES: tuple[ScoredMatch, ...] = (
    ScoredMatch(
        id="mock-1",
        title="Senior Frontend Engineer",
        company="Acme Labs",
        location="Remote",
        description="React, TypeScript and design systems for a B2B analytics product.",
        link="#",
        score=92,
        reasoning=Reasoning(pros=["Strong React overlap"], cons=[], risk_factors=[]),
        source=SourceTag.MOCK.value,
    ),
    ScoredMatch(
        id="mock-2",
        title="Full Stack Developer",
        company="Northwind GmbH",
        location="Berlin, Germany (Hybrid)",
        description="Python backend services with a Vue frontend.",
        link="#",
        score=87,
        reasoning=Reasoning(pros=["Backend depth"], cons=["Hybrid, not remote"], risk_factors=[]),
        source=SourceTag.MOCK.value,
    ),
    ScoredMatch(
        id="mock-3",
        title="Platform Engineer",
        company="Globex",
        location="Remote (EU)",
        description="Kubernetes, Terraform and developer tooling.",
        link="#",
        score=84,
        reasoning=Reasoning(pros=["Tooling focus"], cons=[], risk_factors=["Small team"]),
        source=SourceTag.MOCK.value,
    ),
)


def resolve_recipient(request: DigestRequest, settings: UserSettings, account_email: str = "") -> str:
    recipient = (request.email or "").strip() or settings.digest_email.strip() or (account_email or "").strip()
    if not recipient:
        raise NoRecipientConfigured()
    return recipient


def resolve_threshold(
    request: DigestRequest, settings: UserSettings | None, default: float = DEFAULT_THRESHOLD
) -> float:
    if request.threshold is not None:
        return float(request.threshold)
    if settings is not None and settings.match_threshold is not None:
        return float(settings.match_threshold)
    return float(default)


def select_digest(
    store: MatchStore,
    user_id: str,
    settings: UserSettings,
    request: DigestRequest | None = None,
    *,
    account_email: str = "",
    now: datetime | None = None,
    default_threshold: float = DEFAULT_THRESHOLD,
    batch_limit: int = BATCH_LIMIT,
    first_run_window: timedelta = FIRST_RUN_WINDOW,
) -> DigestSnapshot:
    """Build the digest snapshot for one user.

    Test requests ignore the time window and fall back to MOCK_MATCHES when
    nothing clears the threshold.  Raises NoRecipientConfigured when there
    is no address to send to; store errors propagate as PersistenceFailure.
    """
    request = request or DigestRequest()
    now = now or utcnow()

    recipient = resolve_recipient(request, settings, account_email)
    threshold = resolve_threshold(request, settings, default_threshold)

    since: datetime | None = None
    if not request.test:
        since = settings.last_digest_sent_at or (now - first_run_window)

    fetched = store.list_matches(
        user_id, exclude_dismissed=True, since=since, order_by="score", limit=batch_limit
    )
    normalized = [replace(m, score=normalize_score(m.score)) for m in fetched]
    normalized.sort(key=lambda m: m.score, reverse=True)

    highest = normalized[0].score if normalized else None
    eligible = [m for m in normalized if m.score >= threshold]
    log.info(
        "Digest for %s: fetched=%d eligible=%d threshold=%g since=%s",
        user_id,
        len(normalized),
        len(eligible),
        threshold,
        since.isoformat() if since else "all time",
    )

    used_mock = False
    if request.test and not eligible:
        eligible = [replace(m, created_at=now) for m in MOCK_MATCHES]
        used_mock = True
        log.info("No real matches for %s; previewing with %d mock matches", user_id, len(eligible))

    return DigestSnapshot(
        recipient_email=recipient,
        effective_threshold=threshold,
        since=since,
        total_fetched=len(normalized),
        highest_score=highest,
        matches=eligible,
        used_mock_data=used_mock,
    )
