"""Operator-facing launcher scripts and project metadata files.

The three scripts written into every project are thin launchers: they change
into the project directory and exec the matching ``flaskvite`` sub-command
with the interpreter that generated the project.  All behaviour lives in
:mod:`flaskvite.dev` and :mod:`flaskvite.service`.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

from flaskvite.config import ProjectConfig, ProjectLayout

from .templates import TemplateRenderer

# Launcher attribute on ProjectLayout -> (sub-command, description)
LAUNCHERS: dict[str, tuple[str, str]] = {
    "manager_script": ("manage", "Service manager"),
    "install_script": ("install-service", "Service installer"),
    "dev_script": ("dev", "Development server launcher"),
}


class ScriptGenerator:
    """Renders launcher scripts, ``.gitignore`` and ``README.md``."""

    def __init__(self, renderer: TemplateRenderer, python_executable: str | None = None) -> None:
        self.renderer = renderer
        self.python_executable = python_executable or sys.executable

    def launcher_context(self, config: ProjectConfig, script: str) -> dict[str, Any]:
        subcommand, description = LAUNCHERS[script]
        return {
            "project_name": config.project_name,
            "python_executable": self.python_executable,
            "subcommand": subcommand,
            "description": description,
        }

    async def generate_launcher(
        self, layout: ProjectLayout, config: ProjectConfig, script: str
    ) -> Path:
        """Write one launcher (``manager_script``, ``install_script`` or ``dev_script``)."""
        return await self.renderer.render_to_file(
            "launcher.sh.j2",
            getattr(layout, script),
            self.launcher_context(config, script),
            executable=True,
        )

    async def generate_service_manager(self, layout: ProjectLayout, config: ProjectConfig) -> Path:
        return await self.generate_launcher(layout, config, "manager_script")

    async def generate_install_script(self, layout: ProjectLayout, config: ProjectConfig) -> Path:
        return await self.generate_launcher(layout, config, "install_script")

    async def generate_dev_script(self, layout: ProjectLayout, config: ProjectConfig) -> Path:
        return await self.generate_launcher(layout, config, "dev_script")

    async def generate_metadata(self, layout: ProjectLayout, config: ProjectConfig) -> list[Path]:
        """Write ``.gitignore`` and ``README.md``."""
        ctx = {
            "project_name": config.project_name,
            "port": config.port,
            "service_name": config.service_name,
        }
        return [
            await self.renderer.render_to_file("gitignore.j2", layout.gitignore, ctx),
            await self.renderer.render_to_file("README.md.j2", layout.readme, ctx),
        ]
