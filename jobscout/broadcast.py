"""
Digest delivery.

DigestSender runs one digest attempt for one user (select, render, send,
stamp) and reports the outcome as a DigestOutcome instead of raising, so
the HTTP layer and the hourly broadcast can both turn it into a response.

broadcast_all walks every automation-enabled user one at a time and only
sends to those whose local clock currently reads the send hour.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from enum import Enum
from typing import Any, Callable, Iterable
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from jobscout.config import AppConfig
from jobscout.digest import select_digest
from jobscout.email_report import Mailer, digest_subject, render_digest
from jobscout.errors import EmailSendError, NoRecipientConfigured, PersistenceFailure
from jobscout.log import get_logger
from jobscout.models import DigestRequest, DigestSnapshot, UserSettings
from jobscout.store import MatchStore, utcnow

log = get_logger(__name__)

EMAIL_NOT_CONFIGURED = "Email transport not configured. Set RESEND_API_KEY or SMTP_HOST/SMTP_USER/SMTP_PASSWORD."


class DigestState(str, Enum):
    SKIPPED = "skipped"
    NO_RECIPIENT = "no_recipient"
    NO_MATCHES = "no_matches"
    DIAGNOSTIC = "diagnostic"
    SENT = "sent"
    SEND_FAILED = "send_failed"
    ERROR = "error"


@dataclass
class DigestOutcome:
    user_id: str
    state: DigestState
    http_status: int
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"userId": self.user_id, "status": self.state.value, "httpStatus": self.http_status, **self.data}


def resolve_zone(name: str | None) -> tzinfo:
    """IANA zone for *name*; blank or unknown names mean UTC."""
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        log.warning("Unknown timezone %r, using UTC", name)
        return timezone.utc


def _diagnostic_body(snapshot: DigestSnapshot) -> dict[str, Any]:
    return {
        "diagnostic": True,
        "wouldSendTo": snapshot.recipient_email,
        "matchCount": len(snapshot.matches),
        "threshold": snapshot.effective_threshold,
        "since": snapshot.since.isoformat() if snapshot.since else None,
        "highestScore": snapshot.highest_score,
        "totalFetched": snapshot.total_fetched,
        "usedMockData": snapshot.used_mock_data,
        "matches": [
            {"id": m.id, "title": m.title, "company": m.company, "score": m.score}
            for m in snapshot.matches
        ],
    }


class DigestSender:
    def __init__(
        self,
        store: MatchStore,
        mailer: Mailer | None,
        config: AppConfig | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.store = store
        self.mailer = mailer
        self.config = config or AppConfig()
        self.clock = clock

    def send_for_user(
        self,
        user_id: str,
        request: DigestRequest | None = None,
        *,
        account_email: str = "",
        settings: UserSettings | None = None,
    ) -> DigestOutcome:
        request = request or DigestRequest()
        now = self.clock()
        if settings is None:
            settings = self.store.load_settings(user_id) or UserSettings(user_id=user_id)

        try:
            snapshot = select_digest(
                self.store,
                user_id,
                settings,
                request,
                account_email=account_email,
                now=now,
                default_threshold=self.config.default_match_threshold,
                batch_limit=self.config.digest_batch_limit,
                first_run_window=timedelta(hours=self.config.first_run_window_hours),
            )
        except NoRecipientConfigured as exc:
            log.warning("No digest recipient for %s", user_id)
            return DigestOutcome(user_id, DigestState.NO_RECIPIENT, 400, {"error": str(exc)})
        except PersistenceFailure as exc:
            log.error("Could not load matches for %s: %s", user_id, exc)
            return DigestOutcome(
                user_id, DigestState.ERROR, 500, {"error": "Failed to load matches", "details": str(exc)}
            )

        if request.check:
            return DigestOutcome(user_id, DigestState.DIAGNOSTIC, 200, _diagnostic_body(snapshot))

        if not snapshot.matches and not self.config.digest_send_empty:
            return DigestOutcome(
                user_id,
                DigestState.NO_MATCHES,
                200,
                {
                    "message": "No matches above threshold, no email sent",
                    "threshold": snapshot.effective_threshold,
                    "highestScore": snapshot.highest_score,
                    "totalFetched": snapshot.total_fetched,
                },
            )

        if self.mailer is None:
            log.error("Digest for %s not sent: no email transport", user_id)
            return DigestOutcome(user_id, DigestState.SEND_FAILED, 500, {"error": EMAIL_NOT_CONFIGURED})

        subject = digest_subject(snapshot, now, test=request.test)
        try:
            email_id = self.mailer.send(snapshot.recipient_email, subject, render_digest(snapshot))
        except EmailSendError as exc:
            log.error("Digest send to %s failed: %s", snapshot.recipient_email, exc)
            return DigestOutcome(
                user_id, DigestState.SEND_FAILED, 502, {"error": str(exc), "details": exc.details}
            )

        if not request.test:
            self.store.mark_digest_sent(user_id, now)

        log.info(
            "Digest sent to %s: %d matches (test=%s, id=%s)",
            snapshot.recipient_email,
            len(snapshot.matches),
            request.test,
            email_id,
        )
        return DigestOutcome(
            user_id,
            DigestState.SENT,
            200,
            {
                "success": True,
                "emailId": email_id,
                "sentTo": snapshot.recipient_email,
                "matchCount": len(snapshot.matches),
                "threshold": snapshot.effective_threshold,
                "highestScore": snapshot.highest_score,
                "isTest": request.test,
                "usedMockData": snapshot.used_mock_data,
            },
        )

    def broadcast_all(
        self, targets: Iterable[UserSettings] | None = None, *, diagnostic: bool = False
    ) -> list[DigestOutcome]:
        """Run one digest attempt per automation-enabled user, sequentially.

        Users whose local hour is not the send hour are skipped.  A failure
        for one user is recorded in that user's outcome and the loop moves on.
        """
        if targets is None:
            targets = self.store.automation_targets()
        now = self.clock()
        outcomes: list[DigestOutcome] = []
        for settings in targets:
            zone = resolve_zone(settings.timezone)
            local_hour = now.astimezone(zone).hour
            if local_hour != self.config.digest_send_hour:
                outcomes.append(
                    DigestOutcome(
                        settings.user_id,
                        DigestState.SKIPPED,
                        200,
                        {"message": "Not yet due", "localHour": local_hour, "timezone": str(zone)},
                    )
                )
                continue
            try:
                outcome = self.send_for_user(
                    settings.user_id,
                    DigestRequest(check=diagnostic),
                    account_email=settings.digest_email,
                    settings=settings,
                )
            except Exception as exc:
                log.exception("Digest for %s failed", settings.user_id)
                outcome = DigestOutcome(settings.user_id, DigestState.ERROR, 500, {"error": str(exc)})
            outcomes.append(outcome)

        sent = sum(1 for o in outcomes if o.state == DigestState.SENT)
        skipped = sum(1 for o in outcomes if o.state == DigestState.SKIPPED)
        log.info("Broadcast done: processed=%d sent=%d skipped=%d", len(outcomes), sent, skipped)
        return outcomes
