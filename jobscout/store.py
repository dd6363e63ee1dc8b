"""SQLite store for scored matches, user settings, profiles and strategies.

One connection per operation so the store can be shared by worker threads.
Timestamps are fixed-width UTC strings (``2026-01-31T08:00:00.000000Z``),
which keeps lexical and chronological order identical in SQL comparisons.
"""
from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Iterator

from jobscout.errors import PersistenceFailure
from jobscout.log import get_logger
from jobscout.models import (
    MasterProfile,
    MatchStatus,
    Reasoning,
    ScoredMatch,
    SearchStrategy,
    UserSettings,
    check_transition,
)

log = get_logger(__name__)

_TS_FMT = "%Y-%m-%dT%H:%M:%S.%fZ"

SCHEMA = """
CREATE TABLE IF NOT EXISTS job_matches (
    user_id     TEXT NOT NULL,
    id          TEXT NOT NULL,
    title       TEXT,
    company     TEXT,
    location    TEXT,
    description TEXT,
    score       REAL DEFAULT 0,
    reasoning   TEXT DEFAULT '{"pros":[],"cons":[],"riskFactors":[]}',
    link        TEXT,
    source      TEXT,
    status      TEXT NOT NULL DEFAULT 'pending'
                CHECK (status IN ('pending', 'accepted', 'dismissed')),
    created_at  TEXT NOT NULL,
    PRIMARY KEY (user_id, id)
);
CREATE INDEX IF NOT EXISTS idx_job_matches_score ON job_matches (user_id, score DESC);

CREATE TABLE IF NOT EXISTS user_settings (
    user_id             TEXT PRIMARY KEY,
    automation_enabled  INTEGER NOT NULL DEFAULT 1,
    match_threshold     REAL NOT NULL DEFAULT 80,
    scan_keywords       TEXT NOT NULL DEFAULT '',
    scan_location       TEXT NOT NULL DEFAULT 'Remote',
    digest_email        TEXT NOT NULL DEFAULT '',
    display_name        TEXT NOT NULL DEFAULT '',
    timezone            TEXT NOT NULL DEFAULT '',
    last_digest_sent_at TEXT,
    updated_at          TEXT
);

CREATE TABLE IF NOT EXISTS profiles (
    user_id    TEXT PRIMARY KEY,
    data       TEXT NOT NULL,
    sources    TEXT NOT NULL DEFAULT '[]',
    updated_at TEXT
);

CREATE TABLE IF NOT EXISTS strategies (
    user_id    TEXT PRIMARY KEY,
    data       TEXT NOT NULL,
    updated_at TEXT
);
"""

# UserSettings attribute -> column, for partial updates
_SETTINGS_COLUMNS = (
    "automation_enabled",
    "match_threshold",
    "scan_keywords",
    "scan_location",
    "digest_email",
    "display_name",
    "timezone",
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_ts(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TS_FMT)


def parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.strptime(value, _TS_FMT).replace(tzinfo=timezone.utc)


def _row_to_match(row: sqlite3.Row) -> ScoredMatch:
    try:
        reasoning = json.loads(row["reasoning"] or "{}")
    except json.JSONDecodeError:
        reasoning = {}
    return ScoredMatch(
        id=row["id"],
        title=row["title"] or "",
        company=row["company"] or "",
        location=row["location"] or "",
        description=row["description"] or "",
        link=row["link"] or "#",
        score=row["score"] if row["score"] is not None else 0,
        reasoning=Reasoning.from_raw(reasoning),
        source=row["source"] or "",
        status=MatchStatus(row["status"]),
        created_at=parse_ts(row["created_at"]),
    )


def _row_to_settings(row: sqlite3.Row) -> UserSettings:
    return UserSettings(
        user_id=row["user_id"],
        automation_enabled=bool(row["automation_enabled"]),
        match_threshold=row["match_threshold"],
        scan_keywords=row["scan_keywords"],
        scan_location=row["scan_location"] or "Remote",
        digest_email=row["digest_email"],
        display_name=row["display_name"],
        timezone=row["timezone"],
        last_digest_sent_at=parse_ts(row["last_digest_sent_at"]),
    )


class MatchStore:
    def __init__(self, path: str | Path, clock: Callable[[], datetime] = utcnow) -> None:
        self.path = Path(path)
        self.clock = clock
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._connect() as conn:
            conn.executescript(SCHEMA)

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path, timeout=10)
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Cannot open {self.path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            log.error("Store operation failed: %s", exc)
            raise PersistenceFailure(str(exc)) from exc
        finally:
            conn.close()

    # ── Job matches ────────────────────────────────────────────────────

    def upsert_matches(self, user_id: str, matches: list[ScoredMatch]) -> int:
        """Insert or refresh *matches* keyed by id; returns the number of rows written.

        An existing row keeps its score, reasoning, status and created_at.
        """
        if not matches:
            return 0
        now = format_ts(self.clock())
        rows = [
            (
                user_id,
                m.id,
                m.title,
                m.company,
                m.location or "",
                m.description or "",
                m.score,
                json.dumps(m.reasoning.to_dict()),
                m.link or "",
                m.source or "manual",
                MatchStatus.PENDING.value,
                format_ts(m.created_at) if m.created_at else now,
            )
            for m in matches
        ]
        with self._connect() as conn:
            conn.executemany(
                """
                INSERT INTO job_matches (user_id, id, title, company, location, description,
                                         score, reasoning, link, source, status, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (user_id, id) DO UPDATE SET
                    title = excluded.title,
                    company = excluded.company,
                    location = excluded.location,
                    description = excluded.description,
                    link = excluded.link,
                    source = excluded.source
                """,
                rows,
            )
        log.debug("Upserted %d matches for %s", len(rows), user_id)
        return len(rows)

    def get_match(self, user_id: str, match_id: str) -> ScoredMatch | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM job_matches WHERE user_id = ? AND id = ?", (user_id, match_id)
            ).fetchone()
        return _row_to_match(row) if row else None

    def update_status(self, user_id: str, match_id: str, status: MatchStatus) -> ScoredMatch | None:
        """Apply a status transition; returns the updated match, or None if it does not exist."""
        status = MatchStatus(status)
        current = self.get_match(user_id, match_id)
        if current is None:
            return None
        check_transition(current.status, status)
        with self._connect() as conn:
            conn.execute(
                "UPDATE job_matches SET status = ? WHERE user_id = ? AND id = ?",
                (status.value, user_id, match_id),
            )
        current.status = status
        log.debug("Match %s → %s", match_id, status.value)
        return current

    def list_matches(
        self,
        user_id: str,
        *,
        exclude_dismissed: bool = True,
        status: MatchStatus | None = None,
        since: datetime | None = None,
        order_by: str = "score",
        limit: int | None = None,
    ) -> list[ScoredMatch]:
        clauses = ["user_id = ?"]
        params: list[Any] = [user_id]
        if exclude_dismissed:
            clauses.append("status != ?")
            params.append(MatchStatus.DISMISSED.value)
        if status is not None:
            clauses.append("status = ?")
            params.append(MatchStatus(status).value)
        if since is not None:
            clauses.append("created_at >= ?")
            params.append(format_ts(since))

        if order_by == "score":
            order = "score DESC, created_at DESC"
        elif order_by == "created":
            order = "created_at DESC"
        else:
            raise ValueError(f"Unknown order_by: {order_by!r}")

        sql = f"SELECT * FROM job_matches WHERE {' AND '.join(clauses)} ORDER BY {order}"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))
        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [_row_to_match(r) for r in rows]

    # ── Settings ───────────────────────────────────────────────────────

    def load_settings(self, user_id: str) -> UserSettings | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM user_settings WHERE user_id = ?", (user_id,)
            ).fetchone()
        return _row_to_settings(row) if row else None

    def save_settings(self, user_id: str, **changes: Any) -> UserSettings:
        """Create or partially update a user's settings row."""
        unknown = set(changes) - set(_SETTINGS_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        now = format_ts(self.clock())
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO user_settings (user_id, updated_at) VALUES (?, ?) "
                "ON CONFLICT (user_id) DO NOTHING",
                (user_id, now),
            )
            if changes:
                assignments = ", ".join(f"{col} = ?" for col in changes)
                values = [int(v) if isinstance(v, bool) else v for v in changes.values()]
                conn.execute(
                    f"UPDATE user_settings SET {assignments}, updated_at = ? WHERE user_id = ?",
                    (*values, now, user_id),
                )
        settings = self.load_settings(user_id)
        if settings is None:
            raise PersistenceFailure(f"Settings for {user_id} missing after write")
        return settings

    def ensure_settings(self, user_id: str, email: str) -> UserSettings:
        """First-login hook: create the default row with the account email."""
        existing = self.load_settings(user_id)
        if existing is not None:
            return existing
        log.info("Creating default settings for %s", user_id)
        return self.save_settings(user_id, digest_email=email or "")

    def mark_digest_sent(self, user_id: str, when: datetime) -> None:
        """Stamp the last successful digest, creating the settings row if needed."""
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO user_settings (user_id, last_digest_sent_at, updated_at) VALUES (?, ?, ?) "
                "ON CONFLICT (user_id) DO UPDATE SET "
                "last_digest_sent_at = excluded.last_digest_sent_at, updated_at = excluded.updated_at",
                (user_id, format_ts(when), format_ts(self.clock())),
            )

    def automation_targets(self) -> list[UserSettings]:
        """Every user with automation on and somewhere to send the digest."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM user_settings "
                "WHERE automation_enabled = 1 AND digest_email IS NOT NULL AND digest_email != '' "
                "ORDER BY user_id"
            ).fetchall()
        return [_row_to_settings(r) for r in rows]

    # ── Profile & strategy ─────────────────────────────────────────────

    def save_profile(self, user_id: str, profile: MasterProfile, sources: list | None = None) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO profiles (user_id, data, sources, updated_at) VALUES (?, ?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    data = excluded.data, sources = excluded.sources, updated_at = excluded.updated_at
                """,
                (user_id, json.dumps(profile.to_dict()), json.dumps(sources or []),
                 format_ts(self.clock())),
            )

    def load_profile(self, user_id: str) -> tuple[MasterProfile, list] | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data, sources FROM profiles WHERE user_id = ?", (user_id,)
            ).fetchone()
        if not row:
            return None
        return MasterProfile.from_raw(json.loads(row["data"])), json.loads(row["sources"] or "[]")

    def save_strategy(self, user_id: str, strategy: SearchStrategy) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO strategies (user_id, data, updated_at) VALUES (?, ?, ?)
                ON CONFLICT (user_id) DO UPDATE SET
                    data = excluded.data, updated_at = excluded.updated_at
                """,
                (user_id, json.dumps(strategy.to_dict()), format_ts(self.clock())),
            )

    def load_strategy(self, user_id: str) -> SearchStrategy | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT data FROM strategies WHERE user_id = ?", (user_id,)
            ).fetchone()
        return SearchStrategy.from_raw(json.loads(row["data"])) if row else None
