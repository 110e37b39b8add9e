"""CLI entry point for Seedling."""

import argparse
import asyncio
import json
import logging
import sys
import traceback
from datetime import datetime
from pathlib import Path

from .config import Config, load_config
from .errors import StorageError


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = "".join(traceback.format_exception(*record.exc_info))

        try:
            return json.dumps(log_data)
        except (TypeError, ValueError):
            log_data["message"] = str(log_data["message"])
            if "exception" in log_data:
                log_data["exception"] = str(log_data["exception"])
            return json.dumps(log_data)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure logging.

    Args:
        verbose: Enable debug logging (ignored if log_level is set).
        log_level: Explicit log level (warning, info, debug).
        json_output: Output logs as JSON lines for machine parsing.
    """
    if log_level:
        level_map = {
            "warning": logging.WARNING,
            "info": logging.INFO,
            "debug": logging.DEBUG,
        }
        level = level_map.get(log_level, logging.INFO)
    else:
        level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    logging.basicConfig(level=level, handlers=[handler])


def _build_client(config: Config):
    from .client import FileStorage, LocalTreeMirror, TreeClient

    mirror = LocalTreeMirror(FileStorage(config.client.cache_path))
    return TreeClient(
        mirror,
        server_url=config.client.server_url,
        timeout=config.client.timeout_seconds,
        admin_secret=config.client.admin_secret,
    )


def _print_json(data: dict) -> None:
    print(json.dumps(data, indent=2))


async def cmd_serve(args: argparse.Namespace) -> int:
    """Start the HTTP server."""
    config = load_config(args.config)
    if args.port is not None:
        config.server.port = args.port
    if args.host is not None:
        config.server.host = args.host

    import uvicorn

    from .server import create_app
    from .storage import GardenStore

    store = GardenStore(config.storage.db_path, timeout=config.storage.timeout_seconds)
    try:
        store.connect()
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Starting Seedling server")
    print(f"Database: {store.db_path}")
    print(f"URL: http://{config.server.host}:{config.server.port}")

    app = create_app(config, store)

    try:
        verbose = getattr(args, "verbose", False)
        server = uvicorn.Server(
            uvicorn.Config(
                app,
                host=config.server.host,
                port=config.server.port,
                log_level="info" if verbose else "warning",
            )
        )
        await server.serve()
    finally:
        store.close()

    return 0


async def cmd_tree(args: argparse.Namespace) -> int:
    """Show the tree, refreshing the local cache from the server first."""
    client = _build_client(load_config(args.config))
    synced = await client.sync_from_server()
    state = client.mirror.read()

    data = state.to_dict()
    data["source"] = "server" if synced else "cache"
    data["canWaterToday"] = client.mirror.can_water_today()
    _print_json(data)
    return 0


async def cmd_water(args: argparse.Namespace) -> int:
    """Water the tree."""
    client = _build_client(load_config(args.config))
    result = await client.water_remote_first()
    _print_json(result.to_dict())
    return 0


async def cmd_harvest(args: argparse.Namespace) -> int:
    """Harvest the tree with the admin password."""
    client = _build_client(load_config(args.config))
    result = await client.harvest_remote_first(args.password)
    _print_json(result.to_dict())
    return 0 if result.ok else 1


async def cmd_sync(args: argparse.Namespace) -> int:
    """Overwrite the local cache with the server state."""
    client = _build_client(load_config(args.config))
    if await client.sync_from_server():
        print("Local cache updated from server")
        return 0
    print("Server unreachable, local cache unchanged", file=sys.stderr)
    return 1


def cmd_reset(args: argparse.Namespace) -> int:
    """Reset the local cache to the zero state."""
    client = _build_client(load_config(args.config))
    _print_json(client.mirror.reset().to_dict())
    return 0


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="seedling",
        description="A shared seedling that everyone waters once a day",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start the HTTP server")
    serve_parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port to listen on (default: from config, 3000)",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (default: from config, 0.0.0.0)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Client commands
    tree_parser = subparsers.add_parser("tree", help="Show the tree state")
    tree_parser.set_defaults(func=cmd_tree)

    water_parser = subparsers.add_parser("water", help="Water the tree")
    water_parser.set_defaults(func=cmd_water)

    harvest_parser = subparsers.add_parser("harvest", help="Harvest a ripe tree")
    harvest_parser.add_argument("password", help="Admin password")
    harvest_parser.set_defaults(func=cmd_harvest)

    sync_parser = subparsers.add_parser("sync", help="Refresh the local cache from the server")
    sync_parser.set_defaults(func=cmd_sync)

    reset_parser = subparsers.add_parser("reset", help="Reset the local cache")
    reset_parser.set_defaults(func=cmd_reset)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json)

    if not args.command:
        parser.print_help()
        return 1

    func = args.func
    if asyncio.iscoroutinefunction(func):
        return asyncio.run(func(args))
    return func(args)


if __name__ == "__main__":
    sys.exit(main())
