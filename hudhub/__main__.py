"""
Entry point for the hudhub component.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from .application.domain import (
    DownloadUrl,
    Failed,
    HudInfo,
    HudName,
    Installed,
    LocalPath,
    NoSource,
    Source,
)
from .application.exceptions import HudHubError
from .application.service import HudHubService
from .infrastructure.containers import Container

logger = logging.getLogger(__name__)


def setup_logging(level: str):
    """Applies basic logging configuration."""
    logging.basicConfig(level=level)


def parse_source(value: str) -> Source:
    """Reads a command-line source: a URL, or else a local path."""
    if value.startswith(("http://", "https://")):
        return DownloadUrl(value)
    return LocalPath(Path(value).expanduser())


def format_hud(info: HudInfo) -> str:
    install = info.install
    if isinstance(install, Installed):
        status = f"installed at {install.path}"
    elif isinstance(install, Failed):
        status = f"failed: {install.error}"
    else:
        status = "not installed"

    source = "local" if isinstance(info.source, NoSource) else info.source
    return f"{info.name}\t{status}\t{source}"


def report_error(title: str, error) -> None:
    """Renders a failure as a short title plus its description."""
    print(f"{title}: {error}", file=sys.stderr)


async def run_command(service: HudHubService, args: argparse.Namespace) -> int:
    """Performs a single command against the loaded state."""

    if args.command == "add":
        names = await service.add_from_source(parse_source(args.source))
        for name in names:
            print(name)
        if not names:
            report_error("No HUD found", args.source)
            return 1

    elif args.command == "list":
        for info in service.registry:
            print(format_hud(info))

    elif args.command == "install":
        install = await service.install_hud(HudName(args.name))
        if isinstance(install, Failed):
            report_error(f"Failed to install HUD '{args.name}'", install.error)
            return 1
        print(f"Installed {args.name} at {install.path}")

    elif args.command == "uninstall":
        await service.uninstall_hud(HudName(args.name))

    elif args.command == "remove":
        await service.remove_hud(HudName(args.name))

    elif args.command == "reconcile":
        for entry in await service.reconcile_installed():
            print(f"{entry.name}\t{entry.path}")

    return 0


async def run_application(args: argparse.Namespace) -> int:
    """Wires and runs the application using the DI container."""

    container = Container()
    setup_logging(level=container.config().logging.level)
    service = container.hudhub_service()

    try:
        await service.load_state()
        status = await run_command(service, args)
        await service.save_state()
    except HudHubError as e:
        logger.error(f"An application error occurred: {e}")
        report_error(f"Failed to {args.command}", e)
        status = 1
    finally:
        await container.http_client().aclose()

    return status


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="HUD manager")
    commands = parser.add_subparsers(dest="command", required=True)

    add = commands.add_parser(
        "add", help="Register every HUD found at a URL or a local path."
    )
    add.add_argument("source", help="An archive URL, archive, or directory.")

    commands.add_parser("list", help="List the registered HUDs.")

    install = commands.add_parser(
        "install", help="Install a HUD, replacing the installed one."
    )
    install.add_argument("name")

    uninstall = commands.add_parser("uninstall", help="Uninstall a HUD.")
    uninstall.add_argument("name")

    remove = commands.add_parser("remove", help="Forget a registered HUD.")
    remove.add_argument("name")

    commands.add_parser(
        "reconcile", help="Record the HUDs present in the HUDs directory."
    )

    return parser


def main():
    cli_args = build_parser().parse_args()
    sys.exit(asyncio.run(run_application(cli_args)))


if __name__ == "__main__":
    main()
