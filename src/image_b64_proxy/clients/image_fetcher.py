from __future__ import annotations

import asyncio
import logging
import time

import httpx

from ..config import FetchConfig
from ..types import FetchFailure, FetchOutcome, FetchSuccess

logger = logging.getLogger(__name__)


class ImageFetcher:
    """Downloads generated images: one GET per call, no retry."""

    def __init__(self, config: FetchConfig, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self._config = config
        self._session = httpx.AsyncClient(
            timeout=httpx.Timeout(config.timeout_seconds),
            follow_redirects=config.follow_redirects,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._session.aclose()

    async def fetch(self, url: str | None, index: int) -> FetchOutcome:
        """Fetch ``url`` and report the result tagged with ``index``; never raises for HTTP failures."""
        if not url:
            logger.warning("[ERROR %d] upstream returned no image URL", index)
            return FetchFailure(index=index, reason="missing image URL")

        logger.info("[DOWNLOAD %d] start: %s", index, url)
        start = time.perf_counter()

        try:
            # httpx timeouts are per phase; the wait_for caps the whole download.
            response = await asyncio.wait_for(self._session.get(url), self._config.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "[ERROR %d] download exceeded %.1fs", index, self._config.timeout_seconds
            )
            return FetchFailure(index=index, reason="timeout")
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.warning("[ERROR %d] download failed: %r", index, exc)
            return FetchFailure(index=index, reason=f"{type(exc).__name__}: {exc}")

        if not response.is_success:
            logger.warning("[ERROR %d] HTTP %d", index, response.status_code)
            return FetchFailure(
                index=index,
                reason=f"HTTP {response.status_code}",
                status_code=response.status_code,
            )

        elapsed = time.perf_counter() - start
        logger.info(
            "[SUCCESS %d] downloaded %d bytes in %.3fs", index, len(response.content), elapsed
        )
        return FetchSuccess(index=index, data=response.content)

    async def __aenter__(self) -> "ImageFetcher":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
