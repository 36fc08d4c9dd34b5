"""``amped-client`` entrypoint: load config and keys, then run one authorization."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from amped.cli_options import overrides_from_args, parse_cli_args
from amped.client import AuthorizationClient, PollPolicy
from amped.config import ClientConfig, load_config
from amped.crypto import SealedBoxCryptoProvider
from amped.decision import TerminalPrompt
from amped.errors import AmpedError
from amped.keys import KeyPaths, load_device, load_server
from amped.remote import HttpRemoteService
from amped.transaction import Transaction

_log = logging.getLogger(__name__)
_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _announce_wait(_txn: Transaction | None) -> None:
    print("No dice, let's wait for one...")


def _configure_logging(config: ClientConfig) -> None:
    logging.basicConfig(level=config.log_level, format=_LOG_FORMAT, stream=sys.stderr)


def run(config: ClientConfig) -> int:
    """Run the pipeline once with production collaborators; return the exit code."""
    paths = KeyPaths.in_dir(config.key_dir)
    try:
        server = load_server(config.base_url, paths)
        device = load_device(config.device_id, paths)
        remote = HttpRemoteService(config.base_url, timeout=config.http_timeout)
    except AmpedError as exc:
        print(f"Startup failed: {exc.message}", file=sys.stderr)
        return 1

    with remote:
        client = AuthorizationClient(
            device=device,
            server=server,
            remote=remote,
            crypto=SealedBoxCryptoProvider(),
            decisions=TerminalPrompt(),
            poll_policy=PollPolicy(
                interval=config.poll_interval,
                max_attempts=config.poll_max_attempts,
                retry_transient=config.retry_transient,
            ),
            on_poll_wait=_announce_wait,
        )
        print("Looking for a new transaction...")
        result = client.run()

    if result.ok:
        print(f"Status is now {result.confirmed_status}")
        return 0
    error = result.error
    if error is not None:
        print(f"Aborted ({error.kind}): {error.message}", file=sys.stderr)
    return result.exit_code


def main(argv: list[str] | None = None) -> None:
    """Load ``.env``, config and keys, run one authorization, exit non-zero on failure."""
    load_dotenv(dotenv_path=Path.cwd() / ".env")
    args = parse_cli_args(argv if argv is not None else sys.argv[1:])
    try:
        config = load_config(config_path=args.config, overrides=overrides_from_args(args))
    except AmpedError as exc:
        raise SystemExit(f"Configuration error: {exc.message}") from exc
    _configure_logging(config)

    try:
        code = run(config)
    except KeyboardInterrupt:
        _log.warning("Interrupted by user.")
        raise SystemExit(130) from None
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
