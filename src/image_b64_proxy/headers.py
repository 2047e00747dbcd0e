from __future__ import annotations

from typing import Iterable, Mapping, Tuple

# Headers describing the inbound connection or body framing. httpx recomputes these.
HOP_BY_HOP_HEADERS = frozenset(
    {
        "host",
        "content-length",
        "transfer-encoding",
        "connection",
        "keep-alive",
        "upgrade",
        "te",
        "trailer",
        "proxy-authenticate",
        "proxy-authorization",
        "proxy-connection",
    }
)

REDACTED_HEADERS = frozenset({"authorization"})
REDACTED_PREFIX_LENGTH = 10


def _items(headers: Mapping[str, str] | Iterable[Tuple[str, str]]) -> Iterable[Tuple[str, str]]:
    if isinstance(headers, Mapping):
        # Starlette/httpx header objects expose repeated values through multi_items().
        multi_items = getattr(headers, "multi_items", None)
        return multi_items() if callable(multi_items) else headers.items()
    return headers


def forwardable_headers(headers: Mapping[str, str] | Iterable[Tuple[str, str]]) -> list[tuple[str, str]]:
    """Return inbound headers to replay on the upstream call, credentials included."""
    return [
        (name, value)
        for name, value in _items(headers)
        if name.lower() not in HOP_BY_HOP_HEADERS
    ]


def redact_headers(headers: Mapping[str, str] | Iterable[Tuple[str, str]]) -> dict[str, str]:
    """
    Build a log-safe view of request headers.

    Credential headers keep only their first few characters; repeated headers
    are joined with ``", "``.
    """
    grouped: dict[str, list[str]] = {}
    for name, value in _items(headers):
        grouped.setdefault(name, []).append(value)

    safe: dict[str, str] = {}
    for name, values in grouped.items():
        if name.lower() in REDACTED_HEADERS and values:
            safe[name] = f"{values[0][:REDACTED_PREFIX_LENGTH]}..."
        else:
            safe[name] = ", ".join(values)
    return safe
