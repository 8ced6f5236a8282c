"""Command line interface for the Chaum-Pedersen authentication service."""

from __future__ import annotations

import argparse
import dataclasses
import json
import sys

from cpauth.auth import AuthService
from cpauth.client import HttpChannel, LocalChannel, Prover, secret_from_password
from cpauth.config import Settings, setup_logging
from cpauth.constants import SUPPORTED_BITS
from cpauth.crypto import reference_group
from cpauth.errors import AuthError
from cpauth.store import ChallengeStore

DEFAULT_URL = "http://127.0.0.1:50051"


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: $LOG_LEVEL or INFO)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the authentication server")
    serve_parser.add_argument("--host", help="Bind address (default: $CPAUTH_HOST)")
    serve_parser.add_argument("--port", type=int, help="Bind port (default: $CPAUTH_PORT)")
    serve_parser.add_argument(
        "--bits",
        type=int,
        choices=SUPPORTED_BITS,
        help="Reference group size (default: $CPAUTH_GROUP_BITS)",
    )
    serve_parser.add_argument(
        "--ttl",
        type=float,
        help="Seconds before an unanswered challenge expires",
    )

    for name, help_text in (
        ("register", "Register a user with a password-derived secret"),
        ("login", "Authenticate a registered user"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("user_name", help="User identity")
        sub.add_argument("password", help="Password from which the secret is derived")
        sub.add_argument(
            "--url",
            default=DEFAULT_URL,
            help=f"Server base URL (default: {DEFAULT_URL})",
        )

    demo_parser = subparsers.add_parser(
        "demo",
        help="Register and log in against an in-process service",
    )
    demo_parser.add_argument("user_name")
    demo_parser.add_argument("password")
    demo_parser.add_argument("--bits", type=int, choices=SUPPORTED_BITS, default=1024)

    return parser.parse_args(argv)


def serve(namespace: argparse.Namespace, settings: Settings) -> int:
    overrides = {}
    if namespace.bits is not None:
        overrides["group_bits"] = namespace.bits
    if namespace.ttl is not None:
        overrides["challenge_ttl"] = namespace.ttl
    try:
        settings = dataclasses.replace(settings, **overrides)
    except ValueError as exc:
        print(f"Invalid configuration: {exc}", file=sys.stderr)
        return 2

    import uvicorn

    from cpauth.server import create_app

    service = AuthService(settings.group(), challenges=ChallengeStore(ttl=settings.challenge_ttl))
    uvicorn.run(
        create_app(service),
        host=namespace.host or settings.host,
        port=namespace.port or settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    namespace = parse_args(argv or sys.argv[1:])
    settings = Settings()
    if namespace.log_level:
        settings.log_level = namespace.log_level.upper()
    setup_logging(settings.log_level)

    if namespace.command == "serve":
        return serve(namespace, settings)

    secret = secret_from_password(namespace.password)
    try:
        if namespace.command == "demo":
            service = AuthService(reference_group(namespace.bits))
            channel = LocalChannel(service)
            prover = Prover(service.params, secret)
            prover.register(channel, namespace.user_name)
            session_id = prover.login(channel, namespace.user_name)
            print(json.dumps({"user_name": namespace.user_name, "session_id": session_id}, indent=2))
            return 0

        http = HttpChannel(namespace.url)
        try:
            prover = Prover(http.parameters(), secret)
            if namespace.command == "register":
                prover.register(http, namespace.user_name)
                print(json.dumps({"user_name": namespace.user_name, "registered": True}, indent=2))
                return 0
            if namespace.command == "login":
                session_id = prover.login(http, namespace.user_name)
                print(json.dumps({"user_name": namespace.user_name, "session_id": session_id}, indent=2))
                return 0
        finally:
            http.close()
    except AuthError as exc:
        print(f"Authentication error: {exc}", file=sys.stderr)
        return 1

    raise RuntimeError("Unreachable")


if __name__ == "__main__":
    raise SystemExit(main())
