"""Entry point for the gdocs-markdown-mcp server."""

import argparse
import logging

from core.config import SUPPORTED_TRANSPORTS, get_config
from core.server import server

logger = logging.getLogger(__name__)


def main():
    """
    Run the MCP server.

    Usage:
        gdocs-markdown-mcp                              # stdio mode
        gdocs-markdown-mcp --transport streamable-http  # HTTP mode on $PORT
    """
    config = get_config()

    parser = argparse.ArgumentParser(description="Google Docs markdown MCP server")
    parser.add_argument(
        "--transport",
        choices=SUPPORTED_TRANSPORTS,
        default=config.transport,
        help="Transport to serve on (default: %(default)s)",
    )
    parser.add_argument("--port", type=int, default=config.port, help="Port for streamable-http")
    parser.add_argument("--log-level", default=config.log_level, help="Logging level (default: %(default)s)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    # Registers the tools on the shared server
    import gdocs  # noqa: F401

    logger.info(f"Starting {server.name} ({args.transport}), credentials: {config.credentials_file}")
    if args.transport == "streamable-http":
        server.run(transport="streamable-http", host="0.0.0.0", port=args.port)
    else:
        server.run()


if __name__ == "__main__":
    main()
