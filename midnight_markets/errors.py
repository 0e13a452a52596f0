"""Error taxonomy shared by the upstream adapters."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from .models import Asset


class UpstreamError(Exception):
    """A network call failed: non-2xx status, transport error, timeout or bad JSON."""

    def __init__(self, message: str, *, url: str = "", status: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status = status


@dataclass(frozen=True)
class FetchError:
    """User-facing failure scoped to the subsystem that produced it."""

    subsystem: str
    message: str
    detail: str = ""


@dataclass(frozen=True)
class FetchResult:
    assets: List[Asset] = field(default_factory=list)
    error: Optional[FetchError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, assets: List[Asset]) -> "FetchResult":
        return cls(assets=list(assets))

    @classmethod
    def failure(cls, subsystem: str, message: str, detail: str = "") -> "FetchResult":
        return cls(error=FetchError(subsystem=subsystem, message=message, detail=detail))


__all__ = ["UpstreamError", "FetchError", "FetchResult"]
