"""LLM-backed live search for LinkedIn postings.

The model is asked for a JSON array of real postings.  Its results are
left untagged; the aggregator stamps them with ``SourceTag.LINKEDIN``.
"""
from __future__ import annotations

import hashlib
from typing import Any

from jobscout.errors import InvalidResponse
from jobscout.log import get_logger
from jobscout.models import CandidateJob, SourceTag
from jobscout.retry import RetryableCaller
from jobscout.sources.base import JobSource

log = get_logger(__name__)

WANTED = 5

_SEARCH_PROMPT = """\
Search for real, currently active LinkedIn job postings for keywords: "{keywords}"
in location: "{location}". Find {wanted} authentic jobs.

Return ONLY a JSON array of objects with these keys:
  "id", "title", "company", "location", "link", "description"

"link" must be the real URL of the posting. Do not invent URLs.
"""


def _external_id(item: dict) -> str:
    raw = item.get("id") or item.get("link") or f"{item.get('title')}{item.get('company')}"
    return "li-" + hashlib.sha256(str(raw).encode()).hexdigest()[:12]


class LiveSearchSource(JobSource):
    tag = SourceTag.LINKEDIN.value

    def __init__(self, llm: Any, caller: RetryableCaller | None = None) -> None:
        self.llm = llm
        self.caller = caller or RetryableCaller()

    def _to_candidate(self, item: dict, location: str) -> CandidateJob:
        return CandidateJob(
            external_id=_external_id(item),
            title=str(item.get("title") or "Untitled Position"),
            company=str(item.get("company") or "Unknown Company"),
            location=str(item.get("location") or location or "Remote"),
            description=str(item.get("description") or ""),
            link=str(item.get("link") or "#"),
        )

    def fetch(self, keywords: str, location: str) -> list[CandidateJob]:
        prompt = _SEARCH_PROMPT.format(keywords=keywords, location=location, wanted=WANTED)
        try:
            payload = self.caller.call(lambda: self.llm.complete_json(prompt, max_tokens=3000))
        except InvalidResponse as exc:
            log.warning("Live search returned unparseable output: %s", exc)
            return []
        except Exception as exc:
            log.warning("Live search keywords=%r error: %s", keywords, exc)
            return []

        if not isinstance(payload, list):
            log.warning("Live search expected a JSON array, got %s", type(payload).__name__)
            return []
        jobs = [self._to_candidate(item, location) for item in payload if isinstance(item, dict)]
        log.debug("Live search keywords=%r returned %d jobs", keywords, len(jobs))
        return jobs
