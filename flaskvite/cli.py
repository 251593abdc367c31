"""Command-line entry point (``flaskvite`` / ``python -m flaskvite.cli``).

Sub-commands::

    create           generate a new Flask + Vite project
    dev              run the Flask and Vite dev servers for a project
    install-service  install the project's systemd unit
    manage           interactive service manager menu
    build-frontend   production build of the project's frontend

The launcher scripts written into every generated project exec the matching
sub-command with ``--project-dir`` pointing at the project itself.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Sequence

from flaskvite.config import ProjectLayout, Settings
from flaskvite.dev import DevOrchestrator
from flaskvite.errors import FlaskViteError, GenerationError
from flaskvite.scaffolder import ProjectGenerator
from flaskvite.service import ServiceInstaller, ServiceManager
from flaskvite.service.manager import build_frontend
from flaskvite.utils import console, print_error


# ---------------------------------------------------------------------------
# Sub-command handlers
# ---------------------------------------------------------------------------


async def _create(args: argparse.Namespace, settings: Settings) -> int:
    if args.projects_dir:
        settings = settings.model_copy(update={"projects_dir": Path(args.projects_dir)})
    generator = ProjectGenerator(settings)
    try:
        await generator.generate(args.project_name, args.port)
    except GenerationError:
        # The generator has already reported the stage, the cause and the cleanup.
        print_error("Project generation failed.", out=console)
        return 1
    return 0


async def _dev(args: argparse.Namespace, settings: Settings) -> int:
    return await DevOrchestrator(args.project_dir, settings).run()


async def _install_service(args: argparse.Namespace, settings: Settings) -> int:
    await ServiceInstaller(args.project_dir, settings).install()
    return 0


async def _manage(args: argparse.Namespace, settings: Settings) -> int:
    return await ServiceManager(args.project_dir, settings).run()


async def _build_frontend(args: argparse.Namespace, settings: Settings) -> int:
    layout = ProjectLayout(Path(args.project_dir).resolve())
    await build_frontend(layout, settings, console)
    return 0


# ---------------------------------------------------------------------------
# Argument parsing
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flaskvite",
        description="Flask + Vite project generator with systemd service management",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  flaskvite create my_app --port 5000\n"
            "  flaskvite dev --project-dir ./projects/my_app\n"
            "  flaskvite manage --project-dir ./projects/my_app\n"
        ),
    )
    sub = parser.add_subparsers(dest="command", required=True)

    create = sub.add_parser("create", help="Generate a new project")
    create.add_argument(
        "project_name",
        nargs="?",
        default=None,
        help="Project name (letters, numbers, underscores); prompted for if omitted",
    )
    create.add_argument(
        "--port",
        default=None,
        help="Flask backend port (1024-65535); prompted for if omitted",
    )
    create.add_argument(
        "--projects-dir",
        default=None,
        help="Directory new projects are created in (default: ./projects)",
    )
    create.set_defaults(handler=_create)

    for name, handler, help_text in (
        ("dev", _dev, "Run the Flask and Vite development servers"),
        ("install-service", _install_service, "Install and start the systemd unit"),
        ("manage", _manage, "Interactive service manager"),
        ("build-frontend", _build_frontend, "Build the React frontend for production"),
    ):
        command = sub.add_parser(name, help=help_text)
        command.add_argument(
            "--project-dir",
            default=".",
            help="Root of the generated project (default: current directory)",
        )
        command.set_defaults(handler=handler)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point for ``flaskvite``."""
    args = build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
        code = asyncio.run(args.handler(args, settings))
    except FlaskViteError as exc:
        print_error(str(exc), out=console)
        sys.exit(1)
    except KeyboardInterrupt:
        console.print("\nInterrupted.")
        sys.exit(130)

    sys.exit(code)


if __name__ == "__main__":
    main()
