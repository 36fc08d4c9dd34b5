"""CLI argument and version helpers for the amped-client entrypoint."""

from __future__ import annotations

import argparse
from importlib.metadata import PackageNotFoundError, version

_DIST_NAME = "amped-client"


def project_version() -> str:
    """Installed distribution version, falling back to 0.1.0."""
    try:
        return version(_DIST_NAME)
    except PackageNotFoundError:
        return "0.1.0"


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Parse CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="amped-client",
        description="Approve or deny pending AMPED transactions for this device",
    )
    parser.add_argument("--version", action="version", version=project_version())
    parser.add_argument(
        "--config",
        default=None,
        help="Path to amped.toml (default: $AMPED_CONFIG or ./amped.toml)",
    )
    parser.add_argument("--base-url", default=None, help="Server API base URL")
    parser.add_argument("--device-id", type=int, default=None, help="Registered device id")
    parser.add_argument("--key-dir", default=None, help="Directory holding the PEM key files")
    parser.add_argument(
        "--poll-interval", type=float, default=None, help="Seconds between polls (default: 7)"
    )
    parser.add_argument(
        "--max-attempts",
        type=int,
        default=None,
        help="Give up after this many polls (default: poll until a transaction appears)",
    )
    parser.add_argument(
        "--retry-transient",
        action="store_true",
        default=None,
        help="Keep polling through connection failures and timeouts",
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Per-request HTTP timeout in seconds"
    )
    parser.add_argument("--log-level", default=None, help="DEBUG | INFO | WARNING | ERROR")
    return parser.parse_args(argv)


def overrides_from_args(args: argparse.Namespace) -> dict[str, object]:
    """Map parsed flags onto config setting names; unset flags stay ``None``."""
    return {
        "base_url": args.base_url,
        "device_id": args.device_id,
        "key_dir": args.key_dir,
        "poll_interval": args.poll_interval,
        "poll_max_attempts": args.max_attempts,
        "retry_transient": args.retry_transient,
        "http_timeout": args.timeout,
        "log_level": args.log_level,
    }
