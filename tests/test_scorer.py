"""Tests for LLM match scoring."""

import pytest

from jobscout.errors import InvalidResponse, RateLimited
from jobscout.retry import RetryableCaller
from jobscout.scorer import Scorer

from conftest import FakeLLM, make_job


def test_score_decodes_analysis(profile, strategy, no_sleep):
    llm = FakeLLM(
        {"score": 0.87, "reasoning": {"pros": ["Python"], "cons": ["On-site"], "riskFactors": ["Startup"]}}
    )
    job = make_job(1)

    match = Scorer(llm, RetryableCaller(sleep=no_sleep)).score(profile, strategy, job)

    assert match.id == job.match_id
    assert match.score == 87
    assert match.reasoning.cons == ["On-site"]
    assert match.reasoning.risk_factors == ["Startup"]
    assert match.source == "arbeitsagentur"
    assert "Engineer 1" in llm.prompts[0]
    assert "remote python" in llm.prompts[0]


def test_unparseable_analysis_scores_zero(profile, strategy, no_sleep):
    llm = FakeLLM(InvalidResponse("not json"))
    match = Scorer(llm, RetryableCaller(sleep=no_sleep)).score(profile, strategy, make_job(1))
    assert match.score == 0
    assert match.reasoning.pros == []


def test_missing_fields_get_placeholders(profile, strategy, no_sleep):
    llm = FakeLLM({"score": 140})
    job = make_job(1, title="", company="", location="", description="", link="")
    match = Scorer(llm, RetryableCaller(sleep=no_sleep)).score(profile, strategy, job)

    assert match.score == 100
    assert match.title == "Untitled Position"
    assert match.company == "Unknown Company"
    assert match.location == "Not specified"
    assert match.link == "#"


def test_exhausted_rate_limit_propagates(profile, strategy, no_sleep):
    llm = FakeLLM(RateLimited("429"), RateLimited("429"), RateLimited("429"))
    with pytest.raises(RateLimited):
        Scorer(llm, RetryableCaller(sleep=no_sleep)).score(profile, strategy, make_job(1))
    assert len(llm.prompts) == 3
