"""Command-line interface for the user registry service."""

from __future__ import annotations
import argparse
import logging
import sys
from typing import Iterable, Mapping, Sequence

try:
    import httpx
except ImportError as exc:  # pragma: no cover - exercised in environments missing deps
    raise SystemExit(
        "The 'httpx' package is required. Run `pip install -e .` to install dependencies."
    ) from exc

from user_registry.config import Settings, load_settings
from user_registry.store import RecordStore

logger = logging.getLogger("user_registry.main")


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="User registry utilities")
    subparsers = parser.add_subparsers(dest="command")

    parser.set_defaults(command="serve")

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service")
    serve_parser.add_argument("--host", default=None, help="Bind address (default: HOST or 0.0.0.0)")
    serve_parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the HTTP service (default: PORT or 3000)",
    )
    serve_parser.add_argument(
        "--data-file",
        default=None,
        help="Path to the JSON user store (default: data/users.json)",
    )

    init_parser = subparsers.add_parser("init-store", help="Create the user store if it is missing")
    init_parser.add_argument("--data-file", default=None, help="Path to the JSON user store")

    list_parser = subparsers.add_parser("list-users", help="Print every registered user")
    list_parser.add_argument("--data-file", default=None, help="Path to the JSON user store")
    list_parser.add_argument(
        "--service-url",
        default=None,
        help="Query a running service (e.g. http://localhost:3000) instead of the local store",
    )

    args_list = list(argv) if argv is not None else sys.argv[1:]
    known_commands = {"serve", "init-store", "list-users"}

    if not args_list:
        args_list = ["serve"]
    else:
        first = args_list[0]
        if first in ("-h", "--help"):
            return parser.parse_args(args_list)
        if first not in known_commands:
            if any(flag in args_list for flag in ("-h", "--help")):
                return parser.parse_args(args_list)
            args_list = ["serve", *args_list]

    return parser.parse_args(args_list)


def _initialise_store(settings: Settings) -> RecordStore:
    store = RecordStore(settings.data_file)
    try:
        store.initialize()
    except OSError as exc:
        logger.error("Unable to initialise user store at %s: %s", settings.data_file, exc)
        raise SystemExit(1) from exc
    logger.info("User store ready at %s", settings.data_file)
    return store


def _serve(*, settings: Settings, store: RecordStore) -> None:
    from user_registry.application import create_application
    from user_registry.users import UserService
    import uvicorn

    logger.info("Starting user registry on http://%s:%s", settings.host, settings.port)

    app = create_application(settings=settings, service=UserService(store))
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
    )


def _fetch_remote_users(service_url: str) -> list[Mapping[str, object]] | None:
    endpoint = service_url.rstrip("/") + "/api/users"

    try:
        response = httpx.get(endpoint, timeout=10.0)
    except httpx.HTTPError as exc:
        print(f"Failed to contact user registry service: {exc}")
        return None

    try:
        payload = response.json()
    except ValueError:
        print(f"Service responded with {response.status_code}: {response.text.strip()}")
        return None

    if response.status_code != 200 or not payload.get("success"):
        print(f"Service responded with {response.status_code}: {payload.get('error', 'unknown error')}")
        return None

    return list(payload.get("data") or [])


def _print_users(users: Iterable[Mapping[str, object]]) -> None:
    users = list(users)
    if not users:
        print("No users are currently registered.")
        return

    print(f"{len(users)} user(s) found:")
    print(f"{'ID':<36}  {'Name':<28}  {'Email':<32}  Created")
    print("-" * 120)
    for user in users:
        name = f"{user.get('firstName', '')} {user.get('lastName', '')}".strip()
        email = user.get("email") or "<no email>"
        created = user.get("createdAt") or "unknown"
        print(f"{user.get('id', ''):<36}  {name:<28}  {email:<32}  {created}")


def _list_users(store: RecordStore, *, service_url: str | None = None) -> int:
    if service_url:
        users = _fetch_remote_users(service_url)
        if users is None:
            return 1
    else:
        users = store.load_all()
    _print_users(users)
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for CLI usage."""

    args = _parse_args(argv)
    try:
        settings = load_settings().with_overrides(
            host=getattr(args, "host", None),
            port=getattr(args, "port", None),
            data_file=getattr(args, "data_file", None),
        )
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s [%(levelname)s] %(message)s",
    )

    if args.command == "list-users" and getattr(args, "service_url", None):
        raise SystemExit(_list_users(RecordStore(settings.data_file), service_url=args.service_url))

    store = _initialise_store(settings)

    if args.command == "serve":
        _serve(settings=settings, store=store)
    elif args.command == "init-store":
        print(f"User store initialised at {store.path}")
    elif args.command == "list-users":
        raise SystemExit(_list_users(store))


if __name__ == "__main__":
    main()
