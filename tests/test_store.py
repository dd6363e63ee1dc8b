"""Tests for the SQLite match/settings store."""

from datetime import timedelta

import pytest

from jobscout.errors import InvalidTransition, PersistenceFailure
from jobscout.models import MasterProfile, MatchStatus, SearchStrategy
from jobscout.store import MatchStore, format_ts, parse_ts

from conftest import NOW, make_match


def test_upsert_refreshes_posting_but_keeps_score_and_status(store):
    store.upsert_matches("u1", [make_match("m1", 91, title="Old title")])
    store.update_status("u1", "m1", MatchStatus.DISMISSED)

    store.upsert_matches("u1", [make_match("m1", 12, title="New title", created_at=NOW + timedelta(days=1))])

    row = store.get_match("u1", "m1")
    assert row.title == "New title"
    assert row.score == 91
    assert row.status == MatchStatus.DISMISSED
    assert row.created_at == NOW


def test_rows_are_scoped_per_user(store):
    store.upsert_matches("u1", [make_match("m1", 80)])
    store.upsert_matches("u2", [make_match("m1", 70)])
    assert store.get_match("u1", "m1").score == 80
    assert store.get_match("u2", "m1").score == 70


def test_status_transitions(store):
    store.upsert_matches("u1", [make_match("m1", 80)])

    assert store.update_status("u1", "m1", MatchStatus.ACCEPTED).status == MatchStatus.ACCEPTED
    assert store.update_status("u1", "m1", MatchStatus.PENDING).status == MatchStatus.PENDING
    store.update_status("u1", "m1", MatchStatus.DISMISSED)
    with pytest.raises(InvalidTransition):
        store.update_status("u1", "m1", MatchStatus.ACCEPTED)
    assert store.update_status("u1", "missing", MatchStatus.ACCEPTED) is None


def test_list_matches_filters(store):
    store.upsert_matches(
        "u1",
        [
            make_match("old", 95, created_at=NOW - timedelta(days=3)),
            make_match("new", 60, created_at=NOW - timedelta(minutes=5)),
            make_match("gone", 99, created_at=NOW),
        ],
    )
    store.update_status("u1", "gone", MatchStatus.DISMISSED)

    assert [m.id for m in store.list_matches("u1")] == ["old", "new"]
    assert [m.id for m in store.list_matches("u1", since=NOW - timedelta(hours=1))] == ["new"]
    assert [m.id for m in store.list_matches("u1", order_by="created")] == ["new", "old"]
    assert [m.id for m in store.list_matches("u1", exclude_dismissed=False, limit=1)] == ["gone"]
    assert store.list_matches("u1", status=MatchStatus.ACCEPTED) == []


def test_settings_defaults_and_partial_update(store):
    assert store.load_settings("u1") is None

    created = store.ensure_settings("u1", "ada@example.com")
    assert created.digest_email == "ada@example.com"
    assert created.match_threshold == 80
    assert created.automation_enabled is True

    updated = store.save_settings("u1", match_threshold=70, timezone="Europe/Berlin", automation_enabled=False)
    assert updated.match_threshold == 70
    assert updated.timezone == "Europe/Berlin"
    assert updated.automation_enabled is False
    assert updated.digest_email == "ada@example.com"

    # ensure_settings never overwrites an existing row
    assert store.ensure_settings("u1", "other@example.com").digest_email == "ada@example.com"

    with pytest.raises(ValueError):
        store.save_settings("u1", last_digest_sent_at="yesterday")


def test_mark_digest_sent_and_automation_targets(store):
    store.save_settings("a", digest_email="a@example.com")
    store.save_settings("b", digest_email="")
    store.save_settings("c", digest_email="c@example.com", automation_enabled=False)

    store.mark_digest_sent("a", NOW)

    targets = store.automation_targets()
    assert [t.user_id for t in targets] == ["a"]
    assert targets[0].last_digest_sent_at == NOW


def test_profile_and_strategy_round_trip(store):
    store.save_profile("u1", MasterProfile(name="Ada", skills=["Python"]), [{"web": {"uri": "x"}}])
    store.save_strategy("u1", SearchStrategy(priorities=["remote"], location_preference="remote"))

    profile, sources = store.load_profile("u1")
    assert profile.name == "Ada"
    assert sources == [{"web": {"uri": "x"}}]
    assert store.load_strategy("u1").location_preference == "remote"
    assert store.load_profile("nobody") is None


def test_timestamp_format_sorts_lexically():
    earlier, later = format_ts(NOW), format_ts(NOW + timedelta(microseconds=1))
    assert earlier < later
    assert parse_ts(earlier) == NOW


def test_unopenable_database_raises_persistence_failure(tmp_path):
    blocker = tmp_path / "not-a-dir"
    blocker.write_text("")
    with pytest.raises((PersistenceFailure, OSError)):
        MatchStore(blocker / "jobscout.db")


def test_mark_digest_sent_creates_missing_settings_row(store):
    store.mark_digest_sent("ghost", NOW)

    settings = store.load_settings("ghost")
    assert settings is not None
    assert settings.last_digest_sent_at == NOW
    assert settings.match_threshold == 80

    store.mark_digest_sent("ghost", NOW + timedelta(days=1))
    assert store.load_settings("ghost").last_digest_sent_at == NOW + timedelta(days=1)


def test_save_settings_raises_when_row_cannot_be_read_back(store, monkeypatch):
    monkeypatch.setattr(store, "load_settings", lambda user_id: None)
    with pytest.raises(PersistenceFailure):
        store.save_settings("u1", digest_email="ada@example.com")
