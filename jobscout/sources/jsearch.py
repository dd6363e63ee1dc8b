"""JSearch (RapidAPI): Google for Jobs listings, capped at ten per query."""
from __future__ import annotations

import requests

from jobscout.log import get_logger
from jobscout.models import CandidateJob, SourceTag
from jobscout.sources.base import JobSource

log = get_logger(__name__)

MAX_RESULTS = 10
MAX_DESCRIPTION = 2000


def _to_candidate(hit: dict) -> CandidateJob:
    loc = ", ".join(
        p for p in (hit.get("job_city"), hit.get("job_state"), hit.get("job_country")) if p
    )
    if hit.get("job_is_remote"):
        location = f"Remote ({loc})"
    else:
        location = loc or "Not specified"
    return CandidateJob(
        external_id=f"js-{hit.get('job_id') or ''}",
        title=hit.get("job_title") or "Untitled Position",
        company=hit.get("employer_name") or "Unknown Company",
        location=location,
        description=(hit.get("job_description") or "")[:MAX_DESCRIPTION],
        link=hit.get("job_apply_link") or hit.get("job_google_link") or "#",
        source_tag=SourceTag.JSEARCH.value,
    )


class JSearchSource(JobSource):
    BASE = "https://jsearch.p.rapidapi.com"
    tag = SourceTag.JSEARCH.value

    def __init__(self, api_key: str, timeout: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    def _request(self, keywords: str, location: str) -> list[CandidateJob]:
        r = requests.get(
            f"{self.BASE}/search",
            params={"query": f"{keywords} in {location}", "page": "1", "num_pages": "1"},
            headers={
                "X-RapidAPI-Key": self.api_key,
                "X-RapidAPI-Host": "jsearch.p.rapidapi.com",
            },
            timeout=self.timeout,
        )
        if r.status_code == 403:
            log.warning("JSearch 403 — check the RapidAPI subscription for this key")
            return []
        r.raise_for_status()
        data = r.json()
        return [_to_candidate(hit) for hit in (data.get("data") or [])[:MAX_RESULTS]]

    def fetch(self, keywords: str, location: str) -> list[CandidateJob]:
        if not self.api_key:
            log.warning("JSearch: RAPIDAPI_KEY not configured, skipping")
            return []
        try:
            jobs = self._request(keywords, location)
        except (requests.RequestException, ValueError) as exc:
            log.warning("JSearch query=%r loc=%r error: %s", keywords, location, exc)
            return []
        log.debug("JSearch query=%r loc=%r returned %d jobs", keywords, location, len(jobs))
        return jobs
