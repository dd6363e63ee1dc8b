"""Arbeitsagentur Jobsuche, the German Federal Employment Agency's public job API.

Docs: https://jobsuche.api.bund.dev/  The public key ``jobboerse-jobsuche``
works for everyone; no sign-up needed.
"""
from __future__ import annotations

import hashlib

import requests

from jobscout.config import ARBEITSAGENTUR_PUBLIC_KEY
from jobscout.log import get_logger
from jobscout.models import CandidateJob, SourceTag
from jobscout.sources.base import JobSource

log = get_logger(__name__)

API_URL = "https://rest.arbeitsagentur.de/jobboerse/jobsuche-service/pc/v4/jobs"
DETAIL_URL = "https://www.arbeitsagentur.de/jobsuche/suche?id={hash_id}"
SEARCH_URL = "https://www.arbeitsagentur.de/jobsuche/"
PAGE_SIZE = 10


def _to_candidate(hit: dict) -> CandidateJob:
    place = hit.get("arbeitsort") or {}
    location = ", ".join(
        p for p in (place.get("ort"), place.get("region"), place.get("land")) if p
    )
    title = hit.get("titel") or hit.get("beruf") or "Untitled Position"
    company = hit.get("arbeitgeber") or "Unknown Employer"
    location = location or "Germany"
    hash_id = hit.get("hashId") or hit.get("refnr") or ""
    if hash_id:
        external_id, link = f"aa-{hash_id}", DETAIL_URL.format(hash_id=hash_id)
    else:
        # stable per posting, so a rescan still upserts the same row
        digest = hashlib.sha256(f"{title}|{company}|{location}".encode("utf-8")).hexdigest()
        external_id, link = f"aa-{digest[:12]}", SEARCH_URL
    return CandidateJob(
        external_id=external_id,
        title=title,
        company=company,
        location=location,
        description=(
            f"{hit.get('beruf') or ''}. Eintritt: {hit.get('eintrittsdatum') or 'N/A'}. "
            f"Ref: {hit.get('refnr') or 'N/A'}"
        ),
        link=link,
        source_tag=SourceTag.ARBEITSAGENTUR.value,
    )


class ArbeitsagenturSource(JobSource):
    tag = SourceTag.ARBEITSAGENTUR.value

    def __init__(self, api_key: str = ARBEITSAGENTUR_PUBLIC_KEY, timeout: float = 15.0) -> None:
        self.api_key = api_key
        self.timeout = timeout

    def search(self, keywords: str, location: str) -> list[CandidateJob]:
        """Query the API; HTTP and decode errors propagate."""
        r = requests.get(
            API_URL,
            params={"was": keywords, "wo": location, "page": "1", "size": str(PAGE_SIZE)},
            headers={"X-API-Key": self.api_key},
            timeout=self.timeout,
        )
        r.raise_for_status()
        data = r.json()
        return [_to_candidate(hit) for hit in data.get("stellenangebote") or []]

    def fetch(self, keywords: str, location: str) -> list[CandidateJob]:
        try:
            jobs = self.search(keywords, location)
        except (requests.RequestException, ValueError) as exc:
            log.warning("Arbeitsagentur was=%r wo=%r error: %s", keywords, location, exc)
            return []
        log.debug("Arbeitsagentur was=%r wo=%r returned %d jobs", keywords, location, len(jobs))
        return jobs
