from __future__ import annotations

from typing import Any

from jobscout.config import AppConfig
from jobscout.log import get_logger
from jobscout.retry import RetryableCaller

from .arbeitsagentur import ArbeitsagenturSource
from .base import JobSource
from .jsearch import JSearchSource
from .live_search import LiveSearchSource

log = get_logger(__name__)

__all__ = [
    "JobSource", "ArbeitsagenturSource", "JSearchSource", "LiveSearchSource",
    "get_sources",
]


def get_sources(
    config: AppConfig,
    llm: Any = None,
    caller: RetryableCaller | None = None,
) -> list[JobSource]:
    sources: list[JobSource] = []

    if llm is not None and config.enable_live_search:
        sources.append(LiveSearchSource(llm, caller))
        log.info("Registered source: LinkedIn live search (LLM)")

    # public API, no key needed
    sources.append(
        ArbeitsagenturSource(config.arbeitsagentur_api_key, timeout=config.source_timeout_seconds)
    )
    log.info("Registered source: Arbeitsagentur")

    if config.rapidapi_key:
        sources.append(JSearchSource(config.rapidapi_key, timeout=config.source_timeout_seconds))
        log.info("Registered source: JSearch")

    return sources
