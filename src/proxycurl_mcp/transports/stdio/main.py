from __future__ import annotations

import argparse
import asyncio
from typing import Optional, Sequence

from mcp.server.fastmcp import FastMCP

from proxycurl_mcp.core.config import load_env_config
from proxycurl_mcp.core.context import (
    apply_request_context,
    client_from_context,
    reset_context,
    seed_from_env,
)
from proxycurl_mcp.core.logging import setup_logging
from proxycurl_mcp.core.registry import register_discovered_tools

SERVER_NAME = "proxycurl-mcp"
INSTRUCTIONS = (
    "LinkedIn data search through the Proxycurl API: person and company "
    "profiles, employee listings, and paged people/company searches. "
    "Every call spends Proxycurl credits."
)


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog=SERVER_NAME)
    parser.add_argument(
        "--api-key",
        default=None,
        help="Proxycurl API key (overrides PROXYCURL_API_KEY).",
    )
    return parser.parse_args(argv)


def build_app(client) -> FastMCP:
    app = FastMCP(SERVER_NAME, instructions=INSTRUCTIONS)
    register_discovered_tools(app, lambda: client)
    return app


async def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(load_env_config().log_level)
    # Seed ContextVars from env (stdio bootstrap); one process = one session.
    ctx = seed_from_env(use_dotenv=True, api_key=args.api_key)
    tokens = list(
        apply_request_context(
            api_key=ctx.api_key,
            base_url=ctx.base_url,
            request_id=ctx.request_id,
            session_id=ctx.session_id,
        )
    )
    client = client_from_context()
    try:
        await build_app(client).run_stdio_async()
    finally:
        client.cursors.discard(client.session_id)
        await client.aclose()
        reset_context(tokens)


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
