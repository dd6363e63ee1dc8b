"""Turn raw career data into a MasterProfile and free-text preferences into a SearchStrategy."""
from __future__ import annotations

from typing import Any

from jobscout.errors import InvalidResponse
from jobscout.log import get_logger
from jobscout.models import MasterProfile, SearchStrategy
from jobscout.retry import RetryableCaller

log = get_logger(__name__)

_PROFILE_PROMPT = """\
Synthesize a high-fidelity Master Profile from the professional data below.
Identify trajectory trends and "hidden strengths".

{sections}
Return ONLY valid JSON with these exact keys (empty string / empty list if unknown):
{{
  "name": "Full Name",
  "summary": "2-3 sentence professional summary",
  "skills": ["skill1", "skill2"],
  "experience": [{{"role": "", "company": "", "highlights": [""]}}],
  "hiddenStrengths": ["strength"]
}}
"""

_STRATEGY_PROMPT = """\
Convert these unstructured career preferences and "messy thoughts" into a
rigorous job search strategy:

{thoughts}

Return ONLY valid JSON:
{{
  "priorities": [],
  "dealbreakers": [],
  "preferredIndustries": [],
  "locationPreference": "remote | hybrid | onsite | flexible",
  "seniorityLevel": "e.g. senior"
}}
"""


def synthesize_profile(
    llm: Any,
    *,
    cv_text: str | None = None,
    profile_url: str | None = None,
    extra_info: str | None = None,
    caller: RetryableCaller | None = None,
) -> tuple[MasterProfile, list[dict]]:
    """Build a MasterProfile from any combination of CV text, profile URL and notes.

    Returns the profile plus the list of sources it was built from.
    """
    sections: list[str] = []
    sources: list[dict] = []
    if profile_url:
        sections.append(f"1. LinkedIn profile URL: {profile_url}\n")
        sources.append({"web": {"uri": profile_url, "title": "LinkedIn Profile"}})
    if cv_text:
        sections.append(f"2. CV / professional history:\n{cv_text[:8000]}\n")
    if extra_info:
        sections.append(f"3. Additional context and preferences:\n{extra_info}\n")
    if not sections:
        raise ValueError("Provide at least one of cv_text, profile_url or extra_info")

    caller = caller or RetryableCaller()
    prompt = _PROFILE_PROMPT.format(sections="\n".join(sections))
    try:
        raw = caller.call(lambda: llm.complete_json(prompt, max_tokens=2000))
        profile = MasterProfile.from_raw(raw)
    except InvalidResponse as exc:
        log.warning("Profile synthesis returned unusable output (%s), using defaults", exc)
        profile = MasterProfile()
    log.info("Profile synthesized — name=%s, skills=%d", profile.name, len(profile.skills))
    return profile, sources


def refine_strategy(
    llm: Any,
    messy_thoughts: str,
    *,
    caller: RetryableCaller | None = None,
) -> SearchStrategy:
    if not messy_thoughts.strip():
        raise ValueError("Describe what you are looking for first")
    caller = caller or RetryableCaller()
    prompt = _STRATEGY_PROMPT.format(thoughts=messy_thoughts)
    try:
        strategy = SearchStrategy.from_raw(caller.call(lambda: llm.complete_json(prompt, max_tokens=800)))
    except InvalidResponse as exc:
        log.warning("Strategy refinement returned unusable output (%s), using defaults", exc)
        strategy = SearchStrategy()
    log.info(
        "Strategy refined — %d priorities, %d dealbreakers, location=%s",
        len(strategy.priorities),
        len(strategy.dealbreakers),
        strategy.location_preference,
    )
    return strategy
