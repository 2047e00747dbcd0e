from __future__ import annotations

import asyncio
import base64
import logging
from typing import List, Optional, Protocol, Sequence

from ..models import EncodedItem, ImageReference
from ..types import FetchFailure, FetchOutcome, FetchSuccess

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    async def fetch(self, url: str | None, index: int) -> FetchOutcome: ...


def encode_image(data: bytes) -> str:
    """Standard base64 (RFC 4648 alphabet, '=' padding, no line breaks)."""
    return base64.b64encode(data).decode("ascii")


class FanOutCoordinator:
    """Turn upstream image references into inline base64 items.

    Every reference is fetched concurrently; the output always has one item per
    reference, in reference order, whatever order the downloads finish in.
    """

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher

    async def materialize(self, references: Sequence[ImageReference]) -> List[EncodedItem]:
        if not references:
            return []

        outcomes = await self._collect(references)

        items: List[EncodedItem] = []
        failed = 0
        for reference, outcome in zip(references, outcomes):
            if isinstance(outcome, FetchFailure):
                failed += 1
            items.append(self._to_item(reference, outcome))

        if failed:
            logger.warning("[WARN] %d of %d images failed to download", failed, len(items))
        logger.info("[FAN-OUT] %d ok, %d failed", len(items) - failed, failed)
        return items

    async def _collect(self, references: Sequence[ImageReference]) -> List[FetchOutcome]:
        tasks = [
            asyncio.create_task(self._fetcher.fetch(reference.url, index))
            for index, reference in enumerate(references)
        ]
        slots: List[Optional[FetchOutcome]] = [None] * len(tasks)

        try:
            for next_done in asyncio.as_completed(tasks):
                outcome = await next_done
                if not 0 <= outcome.index < len(slots) or slots[outcome.index] is not None:
                    raise RuntimeError(f"Fetch reported unexpected index {outcome.index}")
                slots[outcome.index] = outcome
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        collected: List[FetchOutcome] = []
        for index, outcome in enumerate(slots):
            if outcome is None:
                raise RuntimeError(f"No fetch outcome recorded for image {index}")
            collected.append(outcome)
        return collected

    @staticmethod
    def _to_item(reference: ImageReference, outcome: FetchOutcome) -> EncodedItem:
        revised_prompt = reference.revised_prompt or None
        if isinstance(outcome, FetchSuccess):
            return EncodedItem(b64_json=encode_image(outcome.data), revised_prompt=revised_prompt)
        return EncodedItem(b64_json="", revised_prompt=revised_prompt)
