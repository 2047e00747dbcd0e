from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from image_b64_proxy.clients.upstream import UpstreamClient
from image_b64_proxy.config import UpstreamConfig
from image_b64_proxy.errors import UpstreamMalformed, UpstreamUnavailable
from image_b64_proxy.models import GenerationRequest

from conftest import UPSTREAM_URL, RecordingTransport


def _client(handler) -> tuple[UpstreamClient, RecordingTransport]:
    transport = RecordingTransport(handler)
    return UpstreamClient(UpstreamConfig(url=UPSTREAM_URL), transport=transport), transport


@pytest.mark.asyncio
async def test_request_is_remapped_and_headers_forwarded(upstream_payload):
    client, transport = _client(lambda request: httpx.Response(200, json=upstream_payload))
    request = GenerationRequest.model_validate(
        {"model": "flux", "prompt": "a fox", "size": "512x512", "steps": 20}
    )

    async with client:
        await client.generate(request, [("Authorization", "Bearer sk-secret-token")])

    sent = transport.requests[0]
    assert str(sent.url) == UPSTREAM_URL
    assert sent.method == "POST"
    assert sent.headers["authorization"] == "Bearer sk-secret-token"
    assert transport.upstream_body() == {
        "model": "flux",
        "prompt": "a fox",
        "image_size": "512x512",
        "steps": 20,
    }


@pytest.mark.asyncio
async def test_unknown_upstream_fields_are_tolerated(upstream_payload):
    upstream_payload["nsfw_flags"] = [False, True]
    upstream_payload["images"][0]["width"] = 1024
    upstream_payload["timings"]["queue"] = "0.3"
    client, _ = _client(lambda request: httpx.Response(200, json=upstream_payload))

    async with client:
        result = await client.generate(GenerationRequest(prompt="x"))

    assert [image.url for image in result.images] == [
        "https://img.test/0.png",
        "https://img.test/1.png",
    ]
    assert result.images[0].revised_prompt == "a red fox"
    assert result.to_payload() == upstream_payload


@pytest.mark.asyncio
async def test_string_seed_and_timing_are_accepted():
    body = {"images": [], "timings": {"inference": "2.5"}, "seed": "12345678901234567890"}
    client, _ = _client(lambda request: httpx.Response(200, json=body))

    async with client:
        result = await client.generate(GenerationRequest(prompt="x"))

    assert result.images == []
    assert result.to_payload() == body


@pytest.mark.asyncio
async def test_non_json_body_is_malformed_and_keeps_body():
    client, _ = _client(lambda request: httpx.Response(200, text="<html>gateway</html>"))

    async with client:
        with pytest.raises(UpstreamMalformed) as excinfo:
            await client.generate(GenerationRequest(prompt="x"))

    assert excinfo.value.body == "<html>gateway</html>"
    assert excinfo.value.status_code == 500


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [[1, 2, 3], {"images": "nope"}, {"images": [{"url": 7}]}],
)
async def test_wrong_shape_is_malformed(body):
    client, _ = _client(lambda request: httpx.Response(200, json=body))

    async with client:
        with pytest.raises(UpstreamMalformed):
            await client.generate(GenerationRequest(prompt="x"))


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [httpx.ConnectError, httpx.ConnectTimeout, httpx.ReadTimeout])
async def test_transport_failure_is_unavailable(error):
    def handler(request: httpx.Request) -> httpx.Response:
        raise error("refused", request=request)

    client, _ = _client(handler)

    async with client:
        with pytest.raises(UpstreamUnavailable) as excinfo:
            await client.generate(GenerationRequest(prompt="x"))

    assert excinfo.value.status_code == 502


@pytest.mark.asyncio
async def test_endpoint_query_is_preserved():
    transport = RecordingTransport(lambda request: httpx.Response(200, json={"images": []}))
    client = UpstreamClient(
        UpstreamConfig(url="https://upstream.test/api/generate?tier=fast"),
        transport=transport,
    )

    async with client:
        await client.generate(GenerationRequest(prompt="x"))

    assert str(transport.requests[0].url) == "https://upstream.test/api/generate?tier=fast"


@pytest.mark.asyncio
async def test_trickling_upstream_is_cut_off_at_the_total_budget():
    async def trickle():
        yield b'{"images": []'
        for _ in range(10):
            await asyncio.sleep(0.1)
            yield b" "
        yield b"}"

    transport = RecordingTransport(lambda request: httpx.Response(200, content=trickle()))
    client = UpstreamClient(UpstreamConfig(url=UPSTREAM_URL, timeout_seconds=0.3), transport=transport)

    async with client:
        start = time.perf_counter()
        with pytest.raises(UpstreamUnavailable):
            await client.generate(GenerationRequest(prompt="x"))
        elapsed = time.perf_counter() - start

    assert elapsed < 0.8


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body",
    [
        {"images": [], "seed": {"value": 1, "source": "rng"}},
        {"images": [], "timings": [1.2, 0.3]},
        {"images": [], "seed": True, "timings": None},
        {"images": [{"url": None, "revised_prompt": "fox"}]},
    ],
)
async def test_metadata_shape_changes_round_trip_verbatim(body):
    client, _ = _client(lambda request: httpx.Response(200, json=body))

    async with client:
        result = await client.generate(GenerationRequest(prompt="x"))

    assert result.to_payload() == body


@pytest.mark.asyncio
async def test_boolean_seed_is_not_coerced_to_int():
    client, _ = _client(lambda request: httpx.Response(200, json={"images": [], "seed": True}))

    async with client:
        result = await client.generate(GenerationRequest(prompt="x"))

    assert result.to_payload()["seed"] is True
