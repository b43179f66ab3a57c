"""
Main entry point for the package version language server.

This file is executed when running: python -m pkgversionls

The server communicates with editors via stdin/stdout using JSON-RPC, so
all logging goes to stderr.
"""
import argparse
import logging
import os
import sys

from pkgversionls import __version__


def main(argv: list[str] | None = None) -> None:
    """Start the language server on stdin/stdout."""
    parser = argparse.ArgumentParser(
        prog="pkgversionls",
        description="Language server showing latest npm package versions on hover",
    )
    parser.add_argument(
        "--version", action="version", version=f"pkgversionls {__version__}"
    )
    parser.parse_args(argv)

    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if os.getenv("DEBUG") else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)

    from pkgversionls.lsp.server import create_server

    server = create_server()

    # Start the server - it will listen on stdin/stdout for LSP messages
    # from the editor client
    server.start_io()


if __name__ == "__main__":
    main()
