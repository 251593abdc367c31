"""Flask backend scaffold: dependency manifest, entrypoint, and virtualenv."""

from __future__ import annotations

from typing import Any

from rich.console import Console

from flaskvite.config import DEFAULT_PORT, ProjectConfig, ProjectLayout, Settings
from flaskvite.utils import console as default_console
from flaskvite.utils import run_checked

from .templates import TemplateRenderer


class BackendScaffolder:
    """Writes ``requirements.txt`` and ``app.py`` and provisions ``.venv``."""

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
        return {
            "project_name": config.project_name,
            "port": config.port,
            "default_port": DEFAULT_PORT,
        }

    def render_app(self, config: ProjectConfig) -> str:
        """Return the contents of the generated ``app.py``."""
        return self.renderer.render("app.py.j2", self.context(config))

    async def scaffold(self, layout: ProjectLayout, config: ProjectConfig) -> None:
        """Generate the backend files and install them into a fresh virtualenv."""
        ctx = self.context(config)

        self.out.print("Creating requirements.txt...")
        await self.renderer.render_to_file("requirements.txt.j2", layout.requirements_file, ctx)

        await ensure_virtualenv(layout, self.settings, self.out)
        await install_requirements(layout, self.settings, self.out)

        self.out.print("Creating Flask application...")
        await self.renderer.render_to_file("app.py.j2", layout.app_file, ctx)


async def ensure_virtualenv(layout: ProjectLayout, settings: Settings, out: Console) -> None:
    """Create ``.venv`` with the configured interpreter unless it already exists."""
    if layout.venv_dir.is_dir():
        return
    out.print("Creating virtual environment...")
    await run_checked(
        [settings.python, "-m", "venv", str(layout.venv_dir)],
        description="create virtual environment",
        cwd=layout.root,
        timeout=settings.command_timeout,
        out=out,
    )


async def install_requirements(layout: ProjectLayout, settings: Settings, out: Console) -> None:
    """Install ``requirements.txt`` into the project virtualenv."""
    out.print("Installing Python dependencies...")
    await run_checked(
        [str(layout.venv_pip), "install", "-r", str(layout.requirements_file)],
        description="install Python dependencies",
        cwd=layout.root,
        timeout=settings.command_timeout,
        out=out,
    )
