"""System requirement checks run before any project file is written."""

from __future__ import annotations

import os
import shutil

from flaskvite.config import Settings
from flaskvite.errors import PreconditionError
from flaskvite.utils import run_command


def is_root() -> bool:
    """Return ``True`` when running with effective uid 0."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0


async def python_version(python: str) -> tuple[int, int] | None:
    """Return ``(major, minor)`` of *python*, or ``None`` if it cannot be queried."""
    code, stdout, _ = await run_command(
        [python, "-c", "import sys; print('%d.%d' % sys.version_info[:2])"],
        timeout=30,
    )
    if code != 0:
        return None
    try:
        major, minor = stdout.strip().split(".")[:2]
        return int(major), int(minor)
    except ValueError:
        return None


async def collect_problems(settings: Settings) -> list[str]:
    """Return a human-readable list of every unmet requirement."""
    problems: list[str] = []

    if shutil.which(settings.python) is None:
        problems.append(
            f"Python 3 is not installed. Please install Python "
            f"{settings.min_python[0]}.{settings.min_python[1]} or higher."
        )
    else:
        version = await python_version(settings.python)
        if version is None:
            problems.append("Failed to determine Python version")
        elif version < settings.min_python:
            problems.append(
                f"Python {settings.min_python[0]}.{settings.min_python[1]} or higher "
                f"is required. Found version: {version[0]}.{version[1]}"
            )

    if shutil.which("node") is None:
        problems.append("Node.js is not installed. Please install Node.js and npm.")
    if shutil.which(settings.npm) is None:
        problems.append("npm is not installed. Please install npm.")
    if shutil.which("systemctl") is None:
        problems.append("systemd (systemctl) is not available on this host.")
    if is_root():
        problems.append("Please run this tool as a regular user, not as root/sudo")

    return problems


async def check_requirements(settings: Settings) -> None:
    """Raise ``PreconditionError`` listing every unmet requirement."""
    problems = await collect_problems(settings)
    if problems:
        raise PreconditionError(problems)
