"""Thin async client over ``systemctl``/``journalctl``.

No service state is stored here: every query goes to systemd.  Mutating
operations run through ``sudo`` and raise ``SupervisorError`` on failure.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from rich.console import Console

from flaskvite.errors import SupervisorError
from flaskvite.utils import console as default_console
from flaskvite.utils import run_checked, run_command


class ServiceState(str, Enum):
    """Lifecycle state of a managed unit as reported by systemd."""

    NOT_INSTALLED = "not installed"
    STOPPED = "stopped"
    RUNNING = "running"
    FAILED = "failed"


def unit_filename(service_name: str) -> str:
    return f"{service_name}.service"


class SystemdSupervisor:
    """Issues lifecycle requests for systemd units."""

    def __init__(
        self,
        unit_dir: str | Path = Path("/etc/systemd/system"),
        sudo: str = "sudo",
        out: Console | None = None,
    ) -> None:
        self.unit_dir = Path(unit_dir)
        self.sudo = sudo
        self.out = out or default_console

    def unit_path(self, service_name: str) -> Path:
        return self.unit_dir / unit_filename(service_name)

    # -- Queries -----------------------------------------------------------

    async def service_exists(self, service_name: str) -> bool:
        """Return ``True`` if systemd knows a unit file for *service_name*."""
        unit = unit_filename(service_name)
        code, stdout, _ = await run_command(
            ["systemctl", "list-unit-files", unit, "--no-legend", "--no-pager"],
            timeout=30,
        )
        if code != 0:
            return False
        return any(line.split()[:1] == [unit] for line in stdout.splitlines() if line.strip())

    async def state(self, service_name: str) -> ServiceState:
        if not await self.service_exists(service_name):
            return ServiceState.NOT_INSTALLED
        _, stdout, _ = await run_command(
            ["systemctl", "is-active", unit_filename(service_name)], timeout=30
        )
        status = stdout.strip()
        if status == "active":
            return ServiceState.RUNNING
        if status == "failed":
            return ServiceState.FAILED
        return ServiceState.STOPPED

    # -- Privilege ---------------------------------------------------------

    async def verify_sudo(self) -> None:
        """Validate (and cache) sudo credentials, prompting if needed."""
        code, _, _ = await run_command([self.sudo, "-v"], capture=False, timeout=None)
        if code != 0:
            raise SupervisorError(
                "This operation requires sudo privileges",
                command=f"{self.sudo} -v",
                returncode=code,
            )

    # -- Unit files --------------------------------------------------------

    async def write_unit(self, service_name: str, content: str) -> Path:
        target = self.unit_path(service_name)
        # tee echoes the whole unit back; keep it off the terminal.
        await run_checked(
            [self.sudo, "tee", str(target)],
            description="create service file",
            input_text=content,
            error_cls=SupervisorError,
            out=Console(quiet=True),
        )
        return target

    async def set_unit_permissions(self, service_name: str, mode: str = "644") -> None:
        await self._sudo(["chmod", mode, str(self.unit_path(service_name))], "set service file permissions")

    async def remove_unit(self, service_name: str) -> None:
        await self._sudo(["rm", str(self.unit_path(service_name))], "remove service file")

    # -- systemctl verbs ---------------------------------------------------

    async def daemon_reload(self) -> None:
        await self._sudo(["systemctl", "daemon-reload"], "reload systemd daemon")

    async def enable(self, service_name: str) -> None:
        await self._sudo(["systemctl", "enable", unit_filename(service_name)], "enable service")

    async def disable(self, service_name: str) -> None:
        await self._sudo(["systemctl", "disable", unit_filename(service_name)], "disable service")

    async def start(self, service_name: str) -> None:
        await self._sudo(["systemctl", "start", unit_filename(service_name)], "start service")

    async def stop(self, service_name: str) -> None:
        await self._sudo(["systemctl", "stop", unit_filename(service_name)], "stop service")

    async def restart(self, service_name: str) -> None:
        await self._sudo(["systemctl", "restart", unit_filename(service_name)], "restart service")

    async def status(self, service_name: str) -> int:
        """Show ``systemctl status`` on the terminal and return its exit code.

        ``systemctl status`` exits 3 for an inactive unit, so only codes
        above 3 are treated as failures.
        """
        code, _, _ = await run_command(
            [self.sudo, "systemctl", "status", "--no-pager", unit_filename(service_name)],
            capture=False,
            timeout=None,
        )
        if code > 3:
            raise SupervisorError(
                "Failed to get service status",
                command=f"systemctl status {unit_filename(service_name)}",
                returncode=code,
            )
        return code

    async def follow_logs(self, service_name: str) -> None:
        """Stream ``journalctl -u <unit> -f`` to the terminal until interrupted."""
        code, _, _ = await run_command(
            [self.sudo, "journalctl", "-u", unit_filename(service_name), "-f"],
            capture=False,
            timeout=None,
        )
        if code != 0:
            raise SupervisorError(
                "Failed to retrieve logs",
                command=f"journalctl -u {unit_filename(service_name)} -f",
                returncode=code,
            )

    # -- Internals ---------------------------------------------------------

    async def _sudo(self, args: list[str], description: str) -> None:
        await run_checked(
            [self.sudo, *args],
            description=description,
            error_cls=SupervisorError,
            out=self.out,
        )

