"""Entry point for the Gmail auth MCP server."""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from gmail_auth.logging_config import configure_logging


def main() -> None:
    """Main entry point.

    Loads environment and starts the MCP server with the transport named by
    TRANSPORT (stdio by default).
    """
    # Load .env file if present
    load_dotenv()

    configure_logging()
    logger = logging.getLogger(__name__)

    from gmail_auth.server import create_server

    mcp = create_server()

    transport = os.getenv("TRANSPORT", "stdio").lower()

    match transport:
        case "streamable-http":
            logger.info("Starting Gmail auth server with streamable-http transport")
            mcp.run(transport="streamable-http")
        case "sse" | "http":
            logger.info("Starting Gmail auth server with SSE transport")
            mcp.run(transport="sse")
        case _:
            logger.info("Starting Gmail auth server with STDIO transport")
            mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
