from __future__ import annotations

import argparse
from pathlib import Path

import uvicorn
from rich.console import Console

from image_b64_proxy.config import load_config
from image_b64_proxy.logging_setup import configure_logging
from image_b64_proxy.server import GENERATIONS_PATH, create_app


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Serve the OpenAI-compatible image proxy that inlines upstream URLs as base64."
    )
    parser.add_argument(
        "--dotenv",
        type=Path,
        default=None,
        help="Optional path to a .env file containing proxy settings.",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Override the bind host (defaults to PROXY_HOST).",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Override the bind port (defaults to PROXY_PORT).",
    )
    return parser.parse_args()


def main() -> None:
    args = parse_args()
    console = Console()

    if args.dotenv is not None and not args.dotenv.exists():
        console.print(f"[red]Dotenv file not found:[/red] {args.dotenv}")
        raise SystemExit(1)

    config = load_config(args.dotenv)
    configure_logging(config.server.log_level)

    host = args.host or config.server.host
    port = args.port or config.server.port
    console.print(
        f"[green]Proxying[/green] http://{host}:{port}{GENERATIONS_PATH} "
        f"[green]->[/green] {config.upstream.url}"
    )

    app = create_app(config)
    uvicorn.run(app, host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
