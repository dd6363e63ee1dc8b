"""Tests for profile synthesis, strategy refinement and CV text extraction."""

import zipfile

import pytest

from jobscout.cv_text import extract_text
from jobscout.errors import InvalidResponse, RateLimited
from jobscout.llm import parse_json_payload
from jobscout.retry import RetryableCaller
from jobscout.synthesis import refine_strategy, synthesize_profile

from conftest import FakeLLM


# --- Profile ---

def test_synthesize_profile_from_cv_and_url(no_sleep):
    llm = FakeLLM(
        {
            "name": "Ada Lovelace",
            "summary": "Analyst",
            "skills": ["Python", "Math"],
            "experience": [{"role": "Analyst", "company": "Engine Co", "highlights": ["Notes G"]}],
            "hiddenStrengths": ["Abstraction"],
        }
    )
    profile, sources = synthesize_profile(
        llm,
        cv_text="Ten years of analysis",
        profile_url="https://linkedin.com/in/ada",
        caller=RetryableCaller(sleep=no_sleep),
    )

    assert profile.name == "Ada Lovelace"
    assert profile.experience[0].highlights == ["Notes G"]
    assert sources == [{"web": {"uri": "https://linkedin.com/in/ada", "title": "LinkedIn Profile"}}]
    assert "Ten years of analysis" in llm.prompts[0]


def test_synthesize_profile_needs_input():
    with pytest.raises(ValueError):
        synthesize_profile(FakeLLM())


def test_unparseable_profile_defaults(no_sleep):
    profile, _ = synthesize_profile(
        FakeLLM(InvalidResponse("nope")), extra_info="likes Rust", caller=RetryableCaller(sleep=no_sleep)
    )
    assert profile.name == "Unknown"
    assert profile.skills == []


def test_profile_synthesis_retries_rate_limits(no_sleep):
    llm = FakeLLM(RateLimited("429"), {"name": "Ada"})
    profile, _ = synthesize_profile(llm, extra_info="x", caller=RetryableCaller(sleep=no_sleep))
    assert profile.name == "Ada"
    assert no_sleep.calls == [2.0]


# --- Strategy ---

def test_refine_strategy(no_sleep):
    llm = FakeLLM(
        {
            "priorities": ["remote first", "python"],
            "dealbreakers": ["crypto"],
            "preferredIndustries": ["health"],
            "locationPreference": "REMOTE",
            "seniorityLevel": "senior",
        }
    )
    strategy = refine_strategy(llm, "I want remote python work, no crypto", caller=RetryableCaller(sleep=no_sleep))
    assert strategy.priorities == ["remote first", "python"]
    assert strategy.location_preference == "remote"
    assert strategy.seniority_level == "senior"


def test_refine_strategy_rejects_blank_input():
    with pytest.raises(ValueError):
        refine_strategy(FakeLLM(), "   ")


# --- JSON payloads ---

def test_parse_json_payload_strips_fences_and_chatter():
    assert parse_json_payload('```json\n{"score": 80}\n```') == {"score": 80}
    assert parse_json_payload('Sure! Here it is: {"score": 80} Hope that helps') == {"score": 80}
    assert parse_json_payload('Results: [{"title": "Dev"}]') == [{"title": "Dev"}]
    with pytest.raises(InvalidResponse):
        parse_json_payload("no json here")
    with pytest.raises(InvalidResponse):
        parse_json_payload("")


# --- CV files ---

def test_extract_text_from_txt(tmp_path):
    path = tmp_path / "cv.txt"
    path.write_text("Ada Lovelace\nAnalyst", encoding="utf-8")
    assert extract_text(path) == "Ada Lovelace\nAnalyst"


def test_extract_text_from_docx(tmp_path):
    path = tmp_path / "cv.docx"
    ns = "http://schemas.openxmlformats.org/wordprocessingml/2006/main"
    document = (
        f'<w:document xmlns:w="{ns}"><w:body>'
        "<w:p><w:r><w:t>Ada </w:t></w:r><w:r><w:t>Lovelace</w:t></w:r></w:p>"
        "<w:p><w:r><w:t>Analyst</w:t></w:r></w:p>"
        "</w:body></w:document>"
    )
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("word/document.xml", document)
    assert extract_text(path) == "Ada Lovelace\nAnalyst"


def test_extract_text_rejects_unknown_format(tmp_path):
    with pytest.raises(ValueError):
        extract_text(tmp_path / "cv.odt")
