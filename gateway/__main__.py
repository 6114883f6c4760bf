#!/usr/bin/env python3
"""Chat Gateway Entry Point
Usage: python -m gateway [mcp|rest] [--check-config] [--verbose].
"""

import argparse
import sys

from api.config.logging import configure_structured_logging
from api.config.settings import get_settings

from .exceptions import ConfigurationError
from .service import ChatGateway


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="MIAW Chat Gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the MCP tools (transport from MIAW_MCP_TRANSPORT, stdio by default)
  python -m gateway

  # Serve the REST API
  python -m gateway rest

  # Validate configuration and the noise filter table, then exit
  python -m gateway --check-config
        """,
    )

    parser.add_argument(
        "mode", nargs="?", choices=["mcp", "rest"], default="mcp", help="Surface to serve"
    )

    parser.add_argument(
        "--check-config", action="store_true", help="Validate configuration and exit"
    )

    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    return parser.parse_args(argv)


def check_config() -> int:
    """Build the gateway from settings and report whether it is usable."""
    settings = get_settings()
    try:
        ChatGateway.from_settings(settings)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    print(f"Remote endpoint: {settings.scrt_url}", file=sys.stderr)
    print(f"Deployment: {settings.es_developer_name} ({settings.platform})", file=sys.stderr)
    print(f"Noise filters: {settings.noise_filter_file}", file=sys.stderr)
    return 0


def run_rest() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )


def run_mcp() -> None:
    from server.server import mcp, set_gateway

    settings = get_settings()
    set_gateway(ChatGateway.from_settings(settings))
    if settings.mcp_transport == "stdio":
        mcp.run()
    else:
        mcp.run(transport=settings.mcp_transport, host=settings.mcp_host, port=settings.mcp_port)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = parse_args(argv)
    settings = get_settings()

    # Setup logging
    configure_structured_logging(
        level="DEBUG" if args.verbose else settings.log_level,
        format_json=settings.log_format_json,
    )

    if args.check_config:
        sys.exit(check_config())

    try:
        if args.mode == "rest":
            run_rest()
        else:
            run_mcp()
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)
    except KeyboardInterrupt:
        print("Gateway stopped", file=sys.stderr)


if __name__ == "__main__":
    main()
