from __future__ import annotations

import asyncio
import json
import logging
from typing import Iterable, Tuple

import httpx
from pydantic import ValidationError

from ..config import UpstreamConfig
from ..errors import UpstreamMalformed, UpstreamUnavailable
from ..models import GenerationRequest, GenerationResult

logger = logging.getLogger(__name__)


class UpstreamClient:
    """Client for the third-party images/generations endpoint."""

    def __init__(
        self,
        config: UpstreamConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        log_body: bool = True,
    ) -> None:
        self._config = config
        self._log_body = log_body
        url = httpx.URL(config.url)

        base_url = url.copy_with(path="/", query=None, fragment=None)
        self._session = httpx.AsyncClient(
            base_url=str(base_url),
            timeout=httpx.Timeout(config.timeout_seconds),
            transport=transport,
        )

        path = (url.path or "").rstrip("/")
        self._generation_path = path or "/v1/images/generations"
        self._params = dict(url.params)

    async def aclose(self) -> None:
        await self._session.aclose()

    async def generate(
        self,
        request: GenerationRequest,
        headers: Iterable[Tuple[str, str]] = (),
    ) -> GenerationResult:
        """
        Forward a generation request and decode the upstream answer.

        ``headers`` are replayed verbatim, credentials included; callers strip
        hop-by-hop headers beforehand.

        Raises
        ------
        UpstreamUnavailable
            The upstream could not be reached or did not answer in time.
        UpstreamMalformed
            The upstream answered with a body that is not a generation result.
        """
        payload = request.to_upstream_payload()
        if self._log_body:
            logger.info("[FORWARD] body: %s", json.dumps(payload, ensure_ascii=False))

        try:
            response = await asyncio.wait_for(
                self._session.post(
                    self._generation_path,
                    params=self._params or None,
                    json=payload,
                    headers=list(headers),
                ),
                self._config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamUnavailable(
                f"Upstream did not answer within {self._config.timeout_seconds}s"
            ) from exc
        except httpx.DecodingError as exc:
            raise UpstreamMalformed(f"Upstream body could not be decoded: {exc}") from exc
        except httpx.HTTPError as exc:
            raise UpstreamUnavailable(f"Upstream request failed: {exc!r}") from exc

        if not response.is_success:
            logger.warning("[UPSTREAM] status %s", response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamMalformed(f"Upstream body is not JSON: {exc}", body=response.text) from exc

        try:
            return GenerationResult.model_validate(data)
        except ValidationError as exc:
            raise UpstreamMalformed(
                f"Upstream body does not match the generation result shape: {exc}",
                body=response.text,
            ) from exc

    async def __aenter__(self) -> "UpstreamClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        await self.aclose()
