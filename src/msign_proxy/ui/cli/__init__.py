"""
Command-line interface for the MSign proxy.

Argument parsing, dispatch, and the ``serve`` command.
Gateway operations live in ``gateway``.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys

from ...constants import DEFAULT_DESCRIPTION, ENV_LOG_LEVEL, __version__
from ...errors import MSignError
from .gateway import (
    cmd_cert_info,
    cmd_clear_password,
    cmd_initiate,
    cmd_set_password,
    cmd_status,
)

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(level_name: str | None) -> None:
    level_name = (level_name or os.environ.get(ENV_LOG_LEVEL) or "INFO").upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        print(f"Warning: unknown log level {level_name!r}, using INFO", file=sys.stderr)
        level = logging.INFO
    logging.basicConfig(level=level, format=_LOG_FORMAT)


def _cmd_serve(args: argparse.Namespace) -> None:
    """Run the HTTP proxy."""
    import uvicorn

    from ...web import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port, log_config=None)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="msign-proxy",
        description="Resilient proxy for the MSign document signing gateway.",
        epilog=(
            "Environment variables:\n"
            "  MSIGN_CERT_PATH             PKCS#12 client certificate\n"
            "  MSIGN_CERT_PASSWORD         Certificate password\n"
            "  MSIGN_ENDPOINT_URL          Gateway SOAP endpoint\n"
            "  MSIGN_REDIRECT_BASE_URL     Signing page base URL\n"
            "  MSIGN_LANGUAGE              Status message language (default: en)\n"
            "  MSIGN_INSECURE_SKIP_VERIFY  Skip gateway certificate checks (testing only)\n"
            "  MSIGN_CONTENT_ROOT          Base directory for relative paths\n"
            "  MSIGN_SETTINGS_FILE         Settings file (default: appsettings.json)\n"
            "  MSIGN_LOG_LEVEL             Logging level (default: INFO)\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-V", "--version", action="version", version=f"msign-proxy {__version__}")
    parser.add_argument("--log-level", default=None, help="Logging level (DEBUG, INFO, ...)")

    sub = parser.add_subparsers(dest="command", help="Available commands")

    # serve
    p_serve = sub.add_parser("serve", help="Run the HTTP proxy")
    p_serve.add_argument("--host", default="127.0.0.1", help="Bind address (default: 127.0.0.1)")
    p_serve.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")

    # initiate
    p_init = sub.add_parser("initiate", help="Submit a PDF for signing")
    p_init.add_argument("file", help="PDF file to submit")
    p_init.add_argument(
        "-r", "--return-url", required=True, help="Where the signing page sends the user back"
    )
    p_init.add_argument(
        "-d",
        "--description",
        default=DEFAULT_DESCRIPTION,
        help=f"Text shown to the signer (default: {DEFAULT_DESCRIPTION!r})",
    )

    # status
    p_status = sub.add_parser("status", help="Show the state of a signing request")
    p_status.add_argument("request_id", help="Request id returned by 'initiate'")
    p_status.add_argument("-l", "--language", default=None, help="Message language")

    # cert-info
    sub.add_parser("cert-info", help="Show the configured client certificate")

    # set-password / clear-password
    sub.add_parser("set-password", help="Store the certificate password in the keychain")
    sub.add_parser("clear-password", help="Remove the stored certificate password")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.log_level)

    try:
        if args.command == "serve":
            _cmd_serve(args)
        elif args.command == "initiate":
            cmd_initiate(args)
        elif args.command == "status":
            cmd_status(args)
        elif args.command == "cert-info":
            cmd_cert_info()
        elif args.command == "set-password":
            cmd_set_password()
        elif args.command == "clear-password":
            cmd_clear_password()
        else:
            parser.print_help()
            sys.exit(1)
    except MSignError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
