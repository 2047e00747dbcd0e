"""
HTTP surface of the proxy.

``create_app`` wires the upstream client, the image fetcher and the fan-out
coordinator into an ``ImageProxy`` and mounts its router on a FastAPI app.
Nothing is registered globally; every app owns its own HTTP clients and
closes them on shutdown.
"""
from __future__ import annotations

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Mapping

import httpx
from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response

from .clients import ImageFetcher, UpstreamClient
from .config import AppConfig
from .errors import ProxyError, RequestMalformed, UpstreamMalformed
from .headers import forwardable_headers, redact_headers
from .models import GenerationRequest
from .tasks import FanOutCoordinator, assemble, passthrough

logger = logging.getLogger(__name__)

GENERATIONS_PATH = "/v1/images/generations"


def parse_request(body: bytes) -> GenerationRequest:
    """Decode the inbound body; only unparseable JSON or a non-object is malformed."""
    try:
        data = json.loads(body)
    except ValueError as exc:
        raise RequestMalformed(f"Request body is not JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise RequestMalformed(f"Request body must be a JSON object, got {type(data).__name__}")

    return GenerationRequest.model_validate(data)


class ImageProxy:
    """Forward one generation request and shape the answer for the caller."""

    def __init__(self, upstream: UpstreamClient, coordinator: FanOutCoordinator) -> None:
        self._upstream = upstream
        self._coordinator = coordinator

    async def handle(self, body: bytes, headers: Mapping[str, str], request_id: str = "-") -> Dict[str, Any]:
        request = parse_request(body)

        try:
            result = await self._upstream.generate(request, forwardable_headers(headers))
        except UpstreamMalformed as exc:
            logger.error("[ERROR] id=%s raw upstream body: %s", request_id, exc.body)
            raise

        if not request.wants_inline():
            logger.info("[SKIP] id=%s returning upstream URLs", request_id)
            return passthrough(result)

        items = await self._coordinator.materialize(result.images)
        logger.info("[SUCCESS] id=%s returning %d images", request_id, len(items))
        return assemble(items).to_payload()


def build_router(proxy: ImageProxy) -> APIRouter:
    router = APIRouter()

    @router.post(GENERATIONS_PATH)
    async def generations(request: Request) -> JSONResponse:
        request_id = uuid.uuid4().hex[:12]
        start = time.perf_counter()
        logger.info("[REQUEST] %s %s id=%s", request.method, request.url.path, request_id)
        logger.debug("[HEADERS] id=%s %s", request_id, redact_headers(request.headers))
        try:
            body = await request.body()
            payload = await proxy.handle(body, request.headers, request_id=request_id)
        finally:
            logger.info("[COMPLETE] id=%s total %.3fs", request_id, time.perf_counter() - start)
        return JSONResponse(payload)

    @router.get("/healthz")
    async def healthz() -> Dict[str, str]:
        return {"status": "ok"}

    return router


async def _proxy_error_handler(request: Request, exc: ProxyError) -> Response:
    logger.error("[ERROR] %s %s: %s", request.method, request.url.path, exc)
    # Error bodies keep json.dumps spacing: {"error": "Invalid JSON"}
    return Response(
        content=json.dumps(exc.to_body()),
        status_code=exc.status_code,
        media_type="application/json",
    )


def create_app(config: AppConfig, transport: httpx.AsyncBaseTransport | None = None) -> FastAPI:
    """Build the proxy application. ``transport`` replaces the network for both HTTP clients."""
    upstream = UpstreamClient(
        config.upstream,
        transport=transport,
        log_body=config.server.log_forward_body,
    )
    fetcher = ImageFetcher(config.fetch, transport=transport)
    proxy = ImageProxy(upstream, FanOutCoordinator(fetcher))

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        async with upstream, fetcher:
            yield

    app = FastAPI(title="Image B64 Proxy", version="0.1.0", lifespan=lifespan)
    app.include_router(build_router(proxy))
    app.add_exception_handler(ProxyError, _proxy_error_handler)
    return app
