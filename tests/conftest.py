"""Shared fixtures: temp store, scripted LLM, recording mailer, fixed clock."""

from datetime import datetime, timezone

import pytest

from jobscout.config import AppConfig
from jobscout.errors import EmailSendError
from jobscout.models import CandidateJob, MasterProfile, Reasoning, ScoredMatch, SearchStrategy
from jobscout.store import MatchStore

NOW = datetime(2026, 3, 2, 8, 15, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


class FakeLLM:
    """Returns scripted replies in order; an Exception instance is raised instead."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts = []

    def complete_json(self, prompt, *, max_tokens=1500, temperature=0.2):
        self.prompts.append(prompt)
        if not self.replies:
            raise AssertionError("FakeLLM ran out of replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class RecordingMailer:
    def __init__(self, fail_with=None):
        self.sent = []
        self.fail_with = fail_with

    def send(self, to, subject, html):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"to": to, "subject": subject, "html": html})
        return f"email-{len(self.sent)}"


class SleepRecorder:
    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


def make_job(n, source_tag="arbeitsagentur", **overrides):
    fields = dict(
        external_id=f"ext-{n}",
        title=f"Engineer {n}",
        company=f"Company {n}",
        location="Berlin",
        description="Python and SQL",
        link=f"https://example.com/jobs/{n}",
        source_tag=source_tag,
    )
    fields.update(overrides)
    return CandidateJob(**fields)


def make_match(match_id, score, created_at=NOW, **overrides):
    fields = dict(
        id=match_id,
        title=f"Role {match_id}",
        company="Initech",
        location="Remote",
        description="",
        link="https://example.com",
        score=score,
        reasoning=Reasoning(pros=["fit"]),
        source="jsearch",
        created_at=created_at,
    )
    fields.update(overrides)
    return ScoredMatch(**fields)


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(tmp_path, clock):
    return MatchStore(tmp_path / "jobscout.db", clock=clock)


@pytest.fixture
def no_sleep():
    return SleepRecorder()


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def failing_mailer():
    return RecordingMailer(fail_with=EmailSendError("Resend API error", status=422, details={"message": "bad"}))


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        db_path=str(tmp_path / "jobscout.db"),
        service_token="service-secret",
        user_token_secret="user-secret",
        resend_api_key="re_test",
    )


@pytest.fixture
def profile():
    return MasterProfile(name="Ada", summary="Backend engineer", skills=["Python", "SQL"])


@pytest.fixture
def strategy():
    return SearchStrategy(priorities=["remote python"], dealbreakers=["crypto"])
