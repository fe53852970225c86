"""Summary: Command-line interface for SocialPilot.

Importance: Gives operators a way to serve the API and inspect or reset stored state.
Alternatives: Use the HTTP debug and reset endpoints only.
"""

from __future__ import annotations

import argparse
import json
import logging

from socialpilot.app import build_context
from socialpilot.cipher import generate_encryption_key
from socialpilot.config import AppConfig
from socialpilot.errors import DecryptionError, SocialPilotError
from socialpilot.models import Platform
from socialpilot.oauth import build_auth_url


PLATFORM_CHOICES = [platform.value for platform in Platform]


def build_parser() -> argparse.ArgumentParser:
    """Summary: Build the CLI argument parser.

    Importance: Defines supported commands for local operation.
    Alternatives: Use a CLI framework like Typer or Click.
    """

    parser = argparse.ArgumentParser(description="SocialPilot CLI")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", type=str, default=None)
    serve.add_argument("--port", type=int, default=None)

    subparsers.add_parser("generate-key", help="Print a new ENCRYPTION_KEY value")

    auth_url = subparsers.add_parser("auth-url", help="Print the authorization URL for a platform")
    auth_url.add_argument("platform", choices=PLATFORM_CHOICES)

    status = subparsers.add_parser("status", help="Show stored state for a platform")
    status.add_argument("platform", choices=PLATFORM_CHOICES)

    reset = subparsers.add_parser("reset", help="Clear all stored state for a platform")
    reset.add_argument("platform", choices=PLATFORM_CHOICES)

    return parser


def run_cli(argv: list[str] | None = None) -> int:
    """Summary: Execute CLI commands based on arguments.

    Importance: State commands read the server-side sqlite store.
    Alternatives: Invoke services via the HTTP API.
    """

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "generate-key":
        print(generate_encryption_key())
        return 0

    config = AppConfig.from_env()

    if args.command == "serve":
        import uvicorn

        uvicorn.run(
            "socialpilot.api:app_factory",
            factory=True,
            host=args.host or config.api_host,
            port=args.port or config.api_port,
        )
        return 0

    context = build_context(config)
    services = context.services_for_state(context.sqlite_state())
    platform = Platform.parse(args.platform)

    if args.command == "auth-url":
        try:
            credentials = services.credentials.load_credentials(platform)
        except DecryptionError as exc:
            print(f"Stored credentials are unreadable: {exc}")
            return 1
        if credentials is None:
            print(f"No credentials stored for {platform.value}.")
            return 1
        print(build_auth_url(platform, credentials))
        return 0

    if args.command == "status":
        snapshot = services.diagnostics.snapshot(platform)
        snapshot.update(services.tokens.token_status(platform).as_dict())
        print(json.dumps(snapshot, indent=2))
        return 0

    if args.command == "reset":
        result = services.diagnostics.reset(platform)
        print(result["message"])
        return 0

    raise SocialPilotError(f"Unknown command: {args.command}")


def main() -> None:
    raise SystemExit(run_cli())


if __name__ == "__main__":
    main()
