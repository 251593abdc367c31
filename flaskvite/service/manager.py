"""Interactive service manager for a generated project.

A numbered menu maps onto the ``MenuCommand`` enum, and each command onto a
handler through a dispatch table.  Lifecycle commands other than install
first check the unit is registered with systemd and return with an
informational message when it is not.
"""

from __future__ import annotations

from enum import IntEnum
from pathlib import Path
from typing import Awaitable, Callable

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from flaskvite.config import ProjectConfig, ProjectLayout, Settings, read_env
from flaskvite.dev import DevOrchestrator
from flaskvite.errors import ExternalToolError, FlaskViteError, PreconditionError
from flaskvite.preflight import is_root
from flaskvite.utils import console as default_console
from flaskvite.utils import print_error, print_success, print_warning, run_checked

from .installer import ServiceInstaller
from .systemd import SystemdSupervisor


class MenuCommand(IntEnum):
    """Menu entries, numbered as shown to the operator."""

    INSTALL = 1
    START = 2
    STOP = 3
    RESTART = 4
    STATUS = 5
    LOGS = 6
    REMOVE = 7
    LAUNCH_DEV = 8
    BUILD_FRONTEND = 9
    EXIT = 10

    @property
    def label(self) -> str:
        return MENU_LABELS[self]


MENU_LABELS: dict[MenuCommand, str] = {
    MenuCommand.INSTALL: "Install service",
    MenuCommand.START: "Start service",
    MenuCommand.STOP: "Stop service",
    MenuCommand.RESTART: "Restart service",
    MenuCommand.STATUS: "Check service status",
    MenuCommand.LOGS: "View logs",
    MenuCommand.REMOVE: "Remove service",
    MenuCommand.LAUNCH_DEV: "Start development servers",
    MenuCommand.BUILD_FRONTEND: "Build React frontend",
    MenuCommand.EXIT: "Exit",
}

# Commands that are meaningless for a unit systemd does not know about.
REQUIRES_INSTALLED: frozenset[MenuCommand] = frozenset(
    {
        MenuCommand.START,
        MenuCommand.STOP,
        MenuCommand.RESTART,
        MenuCommand.STATUS,
        MenuCommand.LOGS,
        MenuCommand.REMOVE,
    }
)


def parse_choice(raw: str | None) -> MenuCommand | None:
    """Map the operator's input to a ``MenuCommand`` (``None`` if invalid)."""
    try:
        return MenuCommand(int((raw or "").strip()))
    except ValueError:
        return None


async def build_frontend(layout: ProjectLayout, settings: Settings, out: Console) -> None:
    """Run the production build (``npm run build``) inside ``frontend/``."""
    out.print("Building React frontend...")
    if not layout.frontend_dir.is_dir():
        raise ExternalToolError("Error: frontend directory not found!")
    await run_checked(
        [settings.npm, "run", "build"],
        description="build frontend",
        cwd=layout.frontend_dir,
        timeout=settings.command_timeout,
        out=out,
    )
    print_success("Frontend built successfully", out=out)


class ServiceManager:
    """Menu-driven wrapper over systemd for one project."""

    def __init__(
        self,
        project_dir: str | Path,
        settings: Settings,
        supervisor: SystemdSupervisor | None = None,
        out: Console | None = None,
    ) -> None:
        self.layout = ProjectLayout(Path(project_dir).resolve())
        self.settings = settings
        self.out = out or default_console
        self.supervisor = supervisor or SystemdSupervisor(settings.unit_dir, out=self.out)
        self.config: ProjectConfig | None = None
        self._handlers: dict[MenuCommand, Callable[[], Awaitable[None]]] = {
            MenuCommand.INSTALL: self.install_service,
            MenuCommand.START: self.start_service,
            MenuCommand.STOP: self.stop_service,
            MenuCommand.RESTART: self.restart_service,
            MenuCommand.STATUS: self.check_status,
            MenuCommand.LOGS: self.view_logs,
            MenuCommand.REMOVE: self.remove_service,
            MenuCommand.LAUNCH_DEV: self.start_dev,
            MenuCommand.BUILD_FRONTEND: self.build_frontend,
        }

    @property
    def service_name(self) -> str:
        return self._require_config().service_name

    # -- Main loop ---------------------------------------------------------

    def load(self) -> ProjectConfig:
        """Check privileges and (re)load ``.env``."""
        if is_root():
            raise PreconditionError(
                ["Please run this as a regular user. Use sudo only when prompted."]
            )
        self.config = read_env(self.layout.root)
        return self.config

    async def run(self) -> int:
        """Show the menu until the operator chooses Exit."""
        self.load()
        while True:
            await self.show_menu()
            command = parse_choice(Prompt.ask("Enter choice [1-10]", console=self.out))
            if command is None:
                print_error("Invalid option", out=self.out)
            elif command is MenuCommand.EXIT:
                self.out.print("Exiting...")
                return 0
            else:
                await self.dispatch(command)
            Prompt.ask("Press enter to continue", default="", show_default=False, console=self.out)

    async def show_menu(self) -> None:
        self.out.clear()
        state = await self.supervisor.state(self.service_name)
        lines = [f"Current Status: service is {state.value}", ""]
        lines.extend(f"{command.value}. {command.label}" for command in MenuCommand)
        self.out.print(
            Panel(
                "\n".join(lines),
                title=f"[bold]Service Manager for {self._require_config().project_name}[/bold]",
                border_style="bright_cyan",
            )
        )

    async def dispatch(self, command: MenuCommand) -> bool:
        """Run the handler for *command*.

        Returns:
            ``True`` if the handler completed, ``False`` if it was skipped or
            failed (the failure is printed, never raised).
        """
        try:
            if command in REQUIRES_INSTALLED and not await self.check_service_exists():
                return False
            await self._handlers[command]()
        except FlaskViteError as exc:
            print_error(str(exc), out=self.out)
            return False
        return True

    async def check_service_exists(self) -> bool:
        if await self.supervisor.service_exists(self.service_name):
            return True
        self.out.print(f"Service {self.service_name} is not installed")
        return False

    # -- Handlers ----------------------------------------------------------

    async def install_service(self) -> None:
        await build_frontend(self.layout, self.settings, self.out)
        installer = ServiceInstaller(
            self.layout.root, self.settings, supervisor=self.supervisor, out=self.out
        )
        await installer.install()

    async def start_service(self) -> None:
        self.out.print("Starting service...")
        await self.supervisor.start(self.service_name)
        print_success("Service started successfully", out=self.out)

    async def stop_service(self) -> None:
        self.out.print("Stopping service...")
        await self.supervisor.stop(self.service_name)
        print_success("Service stopped successfully", out=self.out)

    async def restart_service(self) -> None:
        self.out.print("Restarting service...")
        await self.supervisor.restart(self.service_name)
        print_success("Service restarted successfully", out=self.out)

    async def check_status(self) -> None:
        self.out.print("Service status:")
        await self.supervisor.status(self.service_name)

    async def view_logs(self) -> None:
        self.out.print("Viewing logs (press Ctrl+C to exit)...")
        await self.supervisor.follow_logs(self.service_name)

    async def remove_service(self) -> None:
        confirmed = Confirm.ask(
            "Are you sure you want to remove the service?", default=False, console=self.out
        )
        if not confirmed:
            self.out.print("Operation cancelled")
            return

        name = self.service_name
        self.out.print("Removing service...")
        await self._best_effort("stop service", self.supervisor.stop(name))
        await self._best_effort("disable service", self.supervisor.disable(name))
        await self.supervisor.remove_unit(name)
        await self._best_effort("reload systemd daemon", self.supervisor.daemon_reload())
        print_success("Service removed successfully", out=self.out)

    async def start_dev(self) -> None:
        code = await DevOrchestrator(self.layout.root, self.settings, out=self.out).run()
        if code != 0:
            print_warning(f"Development servers exited with status {code}", out=self.out)

    async def build_frontend(self) -> None:
        await build_frontend(self.layout, self.settings, self.out)

    # -- Internals ---------------------------------------------------------

    def _require_config(self) -> ProjectConfig:
        if self.config is None:
            self.load()
        assert self.config is not None
        return self.config

    async def _best_effort(self, description: str, action: Awaitable[None]) -> None:
        try:
            await action
        except ExternalToolError:
            print_warning(f"Warning: Failed to {description}", out=self.out)

