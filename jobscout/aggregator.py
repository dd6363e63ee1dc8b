"""Fan a search out to every job source at once and merge what comes back."""
from __future__ import annotations

from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace
from typing import Sequence

from jobscout.log import get_logger
from jobscout.models import CandidateJob
from jobscout.sources.base import JobSource

log = get_logger(__name__)


def _fetch_source(source: JobSource, keywords: str, location: str) -> list[CandidateJob]:
    """Run one source; a source that raises anyway counts as empty."""
    try:
        results = source.fetch(keywords, location)
        log.info("[%s] returned %d jobs", source.name, len(results))
    except Exception as exc:
        log.error("[%s] FAILED: %s", source.name, exc)
        return []
    # untagged results (live search) take the source's tag
    return [job if job.source_tag else replace(job, source_tag=source.tag) for job in results]


def aggregate(
    keywords: str,
    location: str,
    sources: Sequence[JobSource],
) -> list[CandidateJob]:
    """Fetch from all *sources* concurrently.

    Results are concatenated in source-completion order, each source's own
    ordering preserved.  Cross-source duplicates are kept.  An empty list
    means a zero-result scan, not an error.
    """
    if not sources:
        return []

    merged: list[CandidateJob] = []
    log.info("Searching %d source(s) in parallel for %r in %r", len(sources), keywords, location)
    with ThreadPoolExecutor(max_workers=len(sources)) as pool:
        futures = [pool.submit(_fetch_source, src, keywords, location) for src in sources]
        for future in as_completed(futures):
            merged.extend(future.result())

    counts = Counter(job.source_tag for job in merged)
    log.info(
        "Aggregated %d candidate jobs (%s)",
        len(merged),
        ", ".join(f"{tag}={n}" for tag, n in counts.items()) or "no results",
    )
    return merged
