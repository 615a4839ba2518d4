from __future__ import annotations

import argparse
import json
import logging
import sys

from msgbridge.client.messages import MessagesClient
from msgbridge.core.config import get_settings
from msgbridge.core.logging import setup_logging
from msgbridge.services.result import Err


def cmd_serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("msgbridge.main:create_app", factory=True, host=host, port=port)
    return 0


def cmd_fetch(topic: str, base_url: str | None, timeout: float | None) -> int:
    settings = get_settings()
    # stdout carries only the JSON result.
    setup_logging(settings.log_level, stream=sys.stderr)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    if base_url:
        settings = settings.model_copy(update={"messages_api_url": base_url})

    with MessagesClient.from_settings(settings) as client:
        result = client.fetch_messages(topic, timeout=timeout)

    if isinstance(result, Err):
        print(f"{type(result.error).__name__}: {result.error}", file=sys.stderr)
        return 1

    print(json.dumps([message.model_dump(mode="json") for message in result.value], indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(prog="msgbridge", description="Typed messages API and client")
    sub = p.add_subparsers(dest="cmd", required=True)

    sp_serve = sub.add_parser("serve", help="Run the messages API")
    sp_serve.add_argument("--host", default="127.0.0.1")
    sp_serve.add_argument("--port", type=int, default=8080)

    sp_fetch = sub.add_parser("fetch", help="Fetch messages for a topic from MESSAGES_API_URL")
    sp_fetch.add_argument("--topic", required=True)
    sp_fetch.add_argument("--base-url", help="Override MESSAGES_API_URL")
    sp_fetch.add_argument("--timeout", type=float, help="Deadline for the whole fetch in seconds")

    args = p.parse_args(argv)

    if args.cmd == "serve":
        return cmd_serve(args.host, args.port)
    if args.cmd == "fetch":
        return cmd_fetch(args.topic, args.base_url, args.timeout)

    raise SystemExit("unknown command")


if __name__ == "__main__":
    raise SystemExit(main())
