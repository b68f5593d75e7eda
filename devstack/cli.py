"""Command-line entry point.

Usage::

    devstack init              # create .env and scaffold missing components
    devstack dev               # init if needed, then start every service
    devstack services          # start only the database and cache
    devstack down              # stop every service
    devstack logs [service]    # follow logs (all services by default)
    devstack clean             # stop everything and delete volumes (asks first)
    devstack health [--once]   # live health dashboard
    devstack status            # runtime state of every service
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Awaitable, Callable

from devstack.config import Config
from devstack.envfile import load_environment
from devstack.errors import DevStackError
from devstack.health import HealthDashboard, HealthPoller, render_report
from devstack.orchestrator import ALL_SERVICES, ServiceOrchestrator, prepare_environment
from devstack.utils import (
    console,
    print_error,
    print_header,
    print_success,
    print_summary_table,
    print_warning,
)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _loaded(config: Config) -> Config:
    """Attach existing ``.env`` values without creating the file."""
    return config.with_environment(load_environment(config.env_path))


def confirm_destructive() -> bool:
    """Ask for an explicit ``y``; anything else (including EOF) declines."""
    print_warning("WARNING: This deletes all data!")
    try:
        answer = console.input("Continue? [y/N]: ")
    except EOFError:
        return False
    return answer.strip() == "y"


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def cmd_init(config: Config, args: argparse.Namespace) -> int:
    print_header("Initialize")
    config = prepare_environment(config)
    await ServiceOrchestrator(config).ensure_components()
    print_success("Frontend and API initialized! Run 'devstack dev' to start all services.")
    return EXIT_OK


async def cmd_dev(config: Config, args: argparse.Namespace) -> int:
    print_header("Start development environment")
    config = prepare_environment(config)
    await ServiceOrchestrator(config).up()
    print_success("All services started. Use 'devstack logs' to view output.")
    print_summary_table(
        {
            "Frontend": f"http://localhost:{config.ports.frontend}",
            "API": config.health_url,
        },
        title="Access",
    )
    return EXIT_OK


async def cmd_services(config: Config, args: argparse.Namespace) -> int:
    print_header("Start infrastructure")
    config = prepare_environment(config)
    await ServiceOrchestrator(config).start_infra()
    print_success("Services started. To develop locally:")
    console.print("  cd src/frontend && bun install && bun run dev")
    console.print("  cd src/api && bun install && bun run dev")
    return EXIT_OK


async def cmd_down(config: Config, args: argparse.Namespace) -> int:
    await ServiceOrchestrator(_loaded(config)).down()
    print_success("All services stopped.")
    return EXIT_OK


async def cmd_logs(config: Config, args: argparse.Namespace) -> int:
    await ServiceOrchestrator(_loaded(config)).logs(args.service)
    return EXIT_OK


async def cmd_clean(config: Config, args: argparse.Namespace) -> int:
    removed = await ServiceOrchestrator(_loaded(config)).clean(confirm_destructive)
    if not removed:
        print_error("Aborted; nothing was removed.")
        return EXIT_FAILURE
    print_success("Cleanup complete")
    return EXIT_OK


async def cmd_status(config: Config, args: argparse.Namespace) -> int:
    states = await ServiceOrchestrator(_loaded(config)).status()
    print_summary_table(states, title="Services")
    return EXIT_OK


async def cmd_health(config: Config, args: argparse.Namespace) -> int:
    config = _loaded(config)
    interval = args.interval if args.interval is not None else config.poll_interval
    poller = HealthPoller(config.health_url, interval=interval)
    if args.once:
        report = await poller.poll_once()
        console.print(render_report(report, config.api_url))
        return EXIT_OK
    await HealthDashboard(poller, config.api_url).run()
    return EXIT_OK


_COMMANDS: dict[str, Callable[[Config, argparse.Namespace], Awaitable[int]]] = {
    "init": cmd_init,
    "dev": cmd_dev,
    "services": cmd_services,
    "down": cmd_down,
    "logs": cmd_logs,
    "clean": cmd_clean,
    "status": cmd_status,
    "health": cmd_health,
}


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def _positive_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if not number > 0:
        raise argparse.ArgumentTypeError(f"must be greater than 0, got {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="devstack",
        description="Zero-to-running local developer environment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  devstack dev\n"
            "  devstack logs api\n"
            "  devstack health --once\n"
        ),
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Project root (default: $DEVSTACK_ROOT or the current directory)",
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND", required=True)

    sub.add_parser("init", help="Initialize frontend + API (dev does this automatically)")
    sub.add_parser("dev", help="Start all services (auto-initializes frontend/api if missing)")
    sub.add_parser("services", help="Start only db + redis (for local dev)")
    sub.add_parser("down", help="Stop all services")

    logs = sub.add_parser("logs", help="Follow logs (all services, or one)")
    logs.add_argument("service", nargs="?", default=ALL_SERVICES, help="Service name or 'all'")

    sub.add_parser("clean", help="Remove all data (destructive!)")
    sub.add_parser("status", help="Show the runtime state of every service")

    health = sub.add_parser("health", help="Watch API health")
    health.add_argument("--once", action="store_true", help="Poll once, print, and exit")
    health.add_argument(
        "--interval", type=_positive_float, default=None, help="Seconds between polls (default: 5)"
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point for ``devstack`` / ``python -m devstack``."""
    args = build_parser().parse_args(argv)

    config = Config.from_env()
    if args.root:
        config = config.model_copy(update={"project_root": Path(args.root)})

    handler = _COMMANDS[args.command]
    try:
        return asyncio.run(handler(config, args))
    except DevStackError as exc:
        print_error(f"Error: {exc}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        console.print()
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
