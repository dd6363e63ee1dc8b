from __future__ import annotations

from abc import ABC, abstractmethod

from jobscout.models import CandidateJob


class JobSource(ABC):
    """One job board.  ``fetch`` resolves upstream failures to an empty list."""

    tag: str = ""

    @property
    def name(self) -> str:
        return self.__class__.__name__

    @abstractmethod
    def fetch(self, keywords: str, location: str) -> list[CandidateJob]:
        pass
