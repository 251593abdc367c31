"""systemd unit installation for a generated project.

Each step is a hard failure with a message naming the step.  Steps already
completed are not undone when a later one fails; see DESIGN.md.
"""

from __future__ import annotations

import getpass
from pathlib import Path
from typing import Any, Awaitable, TypeVar

from rich.console import Console

from flaskvite.config import ProjectConfig, ProjectLayout, Settings, read_env
from flaskvite.errors import ExternalToolError, InstallStepError, PreconditionError
from flaskvite.preflight import is_root
from flaskvite.scaffolder.templates import TemplateRenderer
from flaskvite.utils import console as default_console
from flaskvite.utils import print_success

from .systemd import SystemdSupervisor

T = TypeVar("T")


class ServiceInstaller:
    """Renders, registers, enables and starts the project's systemd unit."""

    def __init__(
        self,
        project_dir: str | Path,
        settings: Settings,
        supervisor: SystemdSupervisor | None = None,
        renderer: TemplateRenderer | None = None,
        user: str | None = None,
        out: Console | None = None,
    ) -> None:
        self.layout = ProjectLayout(Path(project_dir).resolve())
        self.settings = settings
        self.out = out or default_console
        self.supervisor = supervisor or SystemdSupervisor(settings.unit_dir, out=self.out)
        self.renderer = renderer or TemplateRenderer()
        self.user = user or getpass.getuser()

    def unit_context(self, config: ProjectConfig) -> dict[str, Any]:
        return {
            "project_name": config.project_name,
            "port": config.port,
            "user": self.user,
            "group": self.user,
            "install_dir": str(self.layout.root),
            "venv_bin": str(self.layout.venv_bin),
            "venv_python": str(self.layout.venv_python),
        }

    def render_unit(self, config: ProjectConfig) -> str:
        """Return the unit file contents for *config*."""
        return self.renderer.render("unit.service.j2", self.unit_context(config))

    async def install(self) -> Path:
        """Install and start the unit.

        Returns:
            Path of the written unit file.

        Raises:
            ConfigError: ``.env`` missing or incomplete.
            PreconditionError: Running as root.
            InstallStepError: A step failed (sudo check included).
        """
        config = read_env(self.layout.root)
        if is_root():
            raise PreconditionError(
                ["Please run this as a regular user with sudo privileges"]
            )
        await self._step("verify sudo privileges", self.supervisor.verify_sudo())

        name = config.service_name
        self.out.print("Creating systemd service...")
        unit = self.render_unit(config)
        target = await self._step("create service file", self.supervisor.write_unit(name, unit))

        self.out.print("Setting permissions...")
        await self._step("set service file permissions", self.supervisor.set_unit_permissions(name))

        self.out.print("Reloading systemd daemon...")
        await self._step("reload systemd daemon", self.supervisor.daemon_reload())

        self.out.print("Enabling service...")
        await self._step("enable service", self.supervisor.enable(name))

        self.out.print("Starting service...")
        await self._step("start service", self.supervisor.start(name))

        print_success("Service installation completed successfully!", out=self.out)
        return target

    async def _step(self, step: str, action: Awaitable[T]) -> T:
        try:
            return await action
        except ExternalToolError as exc:
            detail = exc.stderr or str(exc)
            raise InstallStepError(step, detail) from exc
