from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class FetchSuccess:
    """Downloaded image bytes for the reference at ``index``."""

    index: int
    data: bytes


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """A download that did not produce image bytes."""

    index: int
    reason: str
    status_code: int | None = None


FetchOutcome = Union[FetchSuccess, FetchFailure]
