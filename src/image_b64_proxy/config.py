from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

DEFAULT_UPSTREAM_URL = "https://api.siliconflow.cn/v1/images/generations"


class UpstreamConfig(BaseModel):
    """Settings for the third-party image generation endpoint."""

    url: str = Field(
        default=DEFAULT_UPSTREAM_URL,
        description="Full URL of the upstream images/generations endpoint",
    )
    timeout_seconds: float = Field(
        default=15.0,
        gt=0.0,
        le=600.0,
        description="Total time budget for a single upstream generation call",
    )


class FetchConfig(BaseModel):
    """Settings applied to every per-image download."""

    timeout_seconds: float = Field(
        default=15.0,
        gt=0.0,
        le=600.0,
        description="Time ceiling for downloading one generated image",
    )
    follow_redirects: bool = Field(
        default=True,
        description="Follow HTTP redirects returned by image hosts",
    )


class ServerConfig(BaseModel):
    """Bind address and diagnostics settings for the HTTP server."""

    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000, ge=1, le=65535)
    log_level: str = Field(default="INFO", description="Root logging level name")
    log_forward_body: bool = Field(
        default=True,
        description="Log the JSON body forwarded to the upstream service",
    )


class AppConfig(BaseModel):
    """Top-level configuration object consumed by the proxy application."""

    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    fetch: FetchConfig = Field(default_factory=FetchConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)


def _bool_from_env(value: Optional[str], default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _float_from_env(value: Optional[str], default: float) -> float:
    if value is None:
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid float value: {value}") from exc


def _int_from_env(value: Optional[str], default: int) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Invalid integer value: {value}") from exc


def load_config(dotenv_path: str | Path | None = None) -> AppConfig:
    """
    Load configuration from environment variables (optionally seeded by a .env file).

    Parameters
    ----------
    dotenv_path:
        Optional override for the .env file location. Defaults to the working directory.

    Raises
    ------
    RuntimeError
        If a configuration value cannot be parsed or fails validation.
    """
    env_path = Path(dotenv_path) if dotenv_path else Path(".env")
    if env_path.exists():
        load_dotenv(env_path)

    data = {
        "upstream": {
            "url": os.getenv("UPSTREAM_URL", DEFAULT_UPSTREAM_URL),
            "timeout_seconds": _float_from_env(os.getenv("UPSTREAM_TIMEOUT_SECONDS"), 15.0),
        },
        "fetch": {
            "timeout_seconds": _float_from_env(os.getenv("FETCH_TIMEOUT_SECONDS"), 15.0),
            "follow_redirects": _bool_from_env(os.getenv("FETCH_FOLLOW_REDIRECTS"), True),
        },
        "server": {
            "host": os.getenv("PROXY_HOST", "0.0.0.0"),
            "port": _int_from_env(os.getenv("PROXY_PORT"), 3000),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            "log_forward_body": _bool_from_env(os.getenv("LOG_FORWARD_BODY"), True),
        },
    }

    try:
        return AppConfig.model_validate(data)
    except ValidationError as exc:
        invalid = {"/".join(str(part) for part in err["loc"]) for err in exc.errors()}
        invalid_str = ", ".join(sorted(invalid))
        raise RuntimeError(f"Invalid configuration values: {invalid_str}") from exc
