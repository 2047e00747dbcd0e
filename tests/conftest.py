from __future__ import annotations

import json
from typing import Callable, List

import httpx
import pytest

from image_b64_proxy.config import AppConfig, FetchConfig, UpstreamConfig

UPSTREAM_URL = "https://upstream.test/v1/images/generations"
PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"


class RecordingTransport(httpx.MockTransport):
    """Mock transport that keeps every request it served."""

    def __init__(self, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.requests: List[httpx.Request] = []

        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        super().__init__(recording_handler)

    def upstream_calls(self) -> List[httpx.Request]:
        return [request for request in self.requests if str(request.url).startswith(UPSTREAM_URL)]

    def fetch_calls(self) -> List[httpx.Request]:
        return [request for request in self.requests if not str(request.url).startswith(UPSTREAM_URL)]

    def upstream_body(self, position: int = 0) -> dict:
        return json.loads(self.upstream_calls()[position].content)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(
        upstream=UpstreamConfig(url=UPSTREAM_URL, timeout_seconds=5.0),
        fetch=FetchConfig(timeout_seconds=5.0),
    )


@pytest.fixture
def upstream_payload() -> dict:
    return {
        "images": [
            {"url": "https://img.test/0.png", "revised_prompt": "a red fox"},
            {"url": "https://img.test/1.png"},
        ],
        "timings": {"inference": 1.25},
        "seed": 4242,
    }
