"""Entry point for running modbamcp as a module: python -m modbamcp."""

import atexit
import logging
import sys
from typing import Literal

from .config import ModBamConfig
from .core.executor import shutdown_executor
from .server import create_server

Transport = Literal["stdio", "sse", "streamable-http"]


def main() -> None:
    """Run the modbamcp MCP server."""
    try:
        config = ModBamConfig.from_env()
    except ValueError as e:
        print(f"Invalid modbamcp configuration: {e}", file=sys.stderr)
        sys.exit(1)

    # stdout carries the stdio transport, so logs go to stderr
    logging.basicConfig(
        level=config.log_level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    atexit.register(shutdown_executor)

    transport: Transport = config.transport  # type: ignore[assignment]
    server = create_server(config)
    logging.getLogger(__name__).info("Starting modbamcp (%s transport)", transport)
    server.run(transport=transport)


if __name__ == "__main__":
    main()
