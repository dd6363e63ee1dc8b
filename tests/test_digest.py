"""Tests for digest selection: recipient, threshold, time window and mock previews."""

from datetime import timedelta

import pytest

from jobscout.digest import MOCK_MATCHES, select_digest
from jobscout.errors import NoRecipientConfigured
from jobscout.models import DigestRequest, MatchStatus, UserSettings

from conftest import NOW, make_match


def _settings(**overrides):
    fields = dict(user_id="u1", digest_email="ada@example.com", match_threshold=80)
    fields.update(overrides)
    return UserSettings(**fields)


def test_first_run_uses_24h_window_and_normalizes(store):
    store.upsert_matches(
        "u1",
        [
            make_match("a", 0.91, created_at=NOW - timedelta(minutes=30)),
            make_match("b", 65, created_at=NOW - timedelta(minutes=20)),
            make_match("c", 88, created_at=NOW - timedelta(minutes=10)),
            make_match("stale", 99, created_at=NOW - timedelta(hours=25)),
        ],
    )

    snap = select_digest(store, "u1", _settings(), now=NOW)

    assert snap.since == NOW - timedelta(hours=24)
    assert snap.total_fetched == 3
    assert snap.highest_score == 91
    assert [m.score for m in snap.matches] == [91, 88]
    assert not snap.used_mock_data


def test_window_starts_at_last_digest(store):
    last = NOW - timedelta(hours=2)
    store.upsert_matches(
        "u1",
        [
            make_match("before", 95, created_at=last - timedelta(seconds=1)),
            make_match("after", 85, created_at=last + timedelta(seconds=1)),
        ],
    )
    snap = select_digest(store, "u1", _settings(last_digest_sent_at=last), now=NOW)
    assert snap.since == last
    assert [m.id for m in snap.matches] == ["after"]


def test_every_selected_match_clears_all_filters(store):
    last = NOW - timedelta(hours=6)
    rows = [make_match(f"m{i}", score, created_at=NOW - timedelta(hours=i)) for i, score in enumerate(
        [0.99, 0.5, 82, 79.6, 100, 40, 0.8, 95, 81, 90]
    )]
    store.upsert_matches("u1", rows)
    store.update_status("u1", "m4", MatchStatus.DISMISSED)

    snap = select_digest(store, "u1", _settings(last_digest_sent_at=last), now=NOW)

    assert snap.matches
    for m in snap.matches:
        assert m.score >= 80
        assert m.created_at >= last
        assert m.status != MatchStatus.DISMISSED


def test_recipient_precedence(store):
    req = DigestRequest(email="override@example.com")
    assert select_digest(store, "u1", _settings(), req, now=NOW).recipient_email == "override@example.com"
    assert select_digest(store, "u1", _settings(), now=NOW).recipient_email == "ada@example.com"
    snap = select_digest(store, "u1", _settings(digest_email=""), account_email="acct@example.com", now=NOW)
    assert snap.recipient_email == "acct@example.com"


def test_no_recipient_raises(store):
    with pytest.raises(NoRecipientConfigured):
        select_digest(store, "u1", _settings(digest_email=""), now=NOW)


def test_threshold_override(store):
    store.upsert_matches("u1", [make_match("a", 70, created_at=NOW)])
    snap = select_digest(store, "u1", _settings(), DigestRequest(threshold=60), now=NOW)
    assert snap.effective_threshold == 60
    assert [m.id for m in snap.matches] == ["a"]


def test_test_mode_ignores_time_window(store):
    store.upsert_matches("u1", [make_match("ancient", 90, created_at=NOW - timedelta(days=400))])

    snap = select_digest(store, "u1", _settings(), DigestRequest(test=True), now=NOW)

    assert snap.since is None
    assert [m.id for m in snap.matches] == ["ancient"]
    assert not snap.used_mock_data


def test_empty_test_mode_substitutes_mock_matches(store):
    snap = select_digest(store, "u1", _settings(), DigestRequest(test=True), now=NOW)

    assert snap.used_mock_data
    assert len(snap.matches) == len(MOCK_MATCHES) == 3
    assert all(m.source == "mock" for m in snap.matches)
    assert snap.total_fetched == 0
    assert snap.highest_score is None


def test_non_test_mode_never_uses_mock(store):
    snap = select_digest(store, "u1", _settings(), now=NOW)
    assert snap.matches == []
    assert not snap.used_mock_data


def test_batch_limit_caps_fetch(store):
    store.upsert_matches("u1", [make_match(f"m{i}", 90, created_at=NOW) for i in range(60)])
    snap = select_digest(store, "u1", _settings(), now=NOW)
    assert snap.total_fetched == 50
