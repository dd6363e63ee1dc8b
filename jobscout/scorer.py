"""Score one candidate job against a profile and search strategy with the LLM."""
from __future__ import annotations

import json
from typing import Any

from jobscout.errors import InvalidResponse
from jobscout.log import get_logger
from jobscout.models import (
    CandidateJob,
    MasterProfile,
    Reasoning,
    ScoredMatch,
    SearchStrategy,
    coerce_score,
)
from jobscout.retry import RetryableCaller

log = get_logger(__name__)

_SCORE_PROMPT = """\
Act as an expert technical recruiter. Cross-reference this Profile and Search
Strategy against the Job Description.

### PROFILE
{profile}

### STRATEGIC RULES
{strategy}

### JOB
Title: {title}
Company: {company}
Location: {location}
{description}

Score the match 0-100. Provide nuanced reasoning including risk factors.
Return ONLY valid JSON:
{{"score": 0, "reasoning": {{"pros": [], "cons": [], "riskFactors": []}}}}
"""


class Scorer:
    def __init__(self, llm: Any, caller: RetryableCaller | None = None) -> None:
        self.llm = llm
        self.caller = caller or RetryableCaller()

    def _prompt(self, profile: MasterProfile, strategy: SearchStrategy, job: CandidateJob) -> str:
        return _SCORE_PROMPT.format(
            profile=json.dumps(profile.to_dict(), ensure_ascii=False),
            strategy=json.dumps(strategy.to_dict(), ensure_ascii=False),
            title=job.title,
            company=job.company,
            location=job.location,
            description=job.description or "No description provided",
        )

    def score(self, profile: MasterProfile, strategy: SearchStrategy, job: CandidateJob) -> ScoredMatch:
        """Score *job*; rate-limit exhaustion and transport errors propagate."""
        prompt = self._prompt(profile, strategy, job)
        try:
            analysis = self.caller.call(lambda: self.llm.complete_json(prompt, max_tokens=800))
        except InvalidResponse as exc:
            log.warning("Unparseable score for %s @ %s (%s) — scoring 0", job.title, job.company, exc)
            analysis = {}
        if not isinstance(analysis, dict):
            log.warning("Score for %s @ %s was not an object — scoring 0", job.title, job.company)
            analysis = {}

        return ScoredMatch(
            id=job.match_id,
            title=job.title or "Untitled Position",
            company=job.company or "Unknown Company",
            location=job.location or "Not specified",
            description=job.description or "No description provided",
            link=job.link or "#",
            score=coerce_score(analysis.get("score")),
            reasoning=Reasoning.from_raw(analysis.get("reasoning")),
            source=job.source_tag,
        )
