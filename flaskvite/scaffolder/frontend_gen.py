"""Vite + React frontend scaffold.

The scaffold itself comes from ``npm create vite``; this module only backs up
a pre-existing ``frontend/`` directory, drives npm, and writes the
``vite.config.js`` that proxies ``/api`` to the Flask backend.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any

from rich.console import Console

from flaskvite.config import ProjectConfig, ProjectLayout, Settings
from flaskvite.utils import console as default_console
from flaskvite.utils import print_warning, run_checked

from .templates import TemplateRenderer

VITE_TEMPLATE = "react"


class FrontendScaffolder:
    """Creates the ``frontend/`` subtree and its proxy configuration."""

    def __init__(
        self,
        renderer: TemplateRenderer,
        settings: Settings,
        out: Console | None = None,
    ) -> None:
        self.renderer = renderer
        self.settings = settings
        self.out = out or default_console

    def context(self, config: ProjectConfig) -> dict[str, Any]:
        return {"project_name": config.project_name, "port": config.port}

    def render_vite_config(self, config: ProjectConfig) -> str:
        """Return the contents of the generated ``vite.config.js``."""
        return self.renderer.render("vite.config.js.j2", self.context(config))

    async def scaffold(self, layout: ProjectLayout, config: ProjectConfig) -> None:
        if layout.frontend_dir.exists():
            backup = backup_directory(layout.frontend_dir)
            print_warning(
                f"Warning: Frontend directory already exists. Backed up to {backup.name}",
                out=self.out,
            )

        self.out.print("Initializing React project...")
        await run_checked(
            [
                self.settings.npm, "create", "--yes", "vite@latest",
                layout.frontend_dir.name, "--", "--template", VITE_TEMPLATE,
            ],
            description="create React project",
            cwd=layout.root,
            timeout=self.settings.command_timeout,
            out=self.out,
        )

        self.out.print("Installing frontend dependencies...")
        await run_checked(
            [self.settings.npm, "install"],
            description="install frontend dependencies",
            cwd=layout.frontend_dir,
            timeout=self.settings.command_timeout,
            out=self.out,
        )

        self.out.print("Configuring Vite...")
        await self.renderer.render_to_file(
            "vite.config.js.j2", layout.vite_config, self.context(config)
        )


def backup_directory(path: Path, now: datetime | None = None) -> Path:
    """Rename *path* to ``<name>_backup_<YYYYmmdd_HHMMSS>`` and return the new path."""
    stamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    target = path.with_name(f"{path.name}_backup_{stamp}")
    return path.rename(target)
