"""Development launcher: Flask and Vite dev servers side by side.

Setup is sequential (port check, virtualenv, npm install); the two servers
then run concurrently as independent OS processes.  A ``DevSession`` owns the
two process handles and shuts both down exactly once, whether the trigger is
SIGINT/SIGTERM or one of the servers exiting on its own.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import signal
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console

from flaskvite.config import ProjectConfig, ProjectLayout, Settings, read_env
from flaskvite.errors import DevServerError, PortInUseError
from flaskvite.scaffolder.backend_gen import ensure_virtualenv, install_requirements
from flaskvite.utils import (
    check_port_available,
    console as default_console,
    print_error,
    print_success,
    print_warning,
    run_checked,
    wait_for_health,
)

SHUTDOWN_TIMEOUT = 5.0
HEALTH_TIMEOUT = 15.0


@dataclass
class DevSession:
    """Process handles for one ``flaskvite dev`` run."""

    backend: asyncio.subprocess.Process | None = None
    frontend: asyncio.subprocess.Process | None = None
    _shut_down: bool = field(default=False, init=False, repr=False)

    def handles(self) -> dict[str, asyncio.subprocess.Process]:
        return {
            name: proc
            for name, proc in (("backend", self.backend), ("frontend", self.frontend))
            if proc is not None
        }

    @property
    def is_shut_down(self) -> bool:
        return self._shut_down

    def shutdown(self) -> list[str]:
        """Ask every recorded process to terminate.

        Only the first call has an effect.  Processes that already exited are
        skipped silently.

        Returns:
            Names of the processes that were sent a termination request.
        """
        if self._shut_down:
            return []
        self._shut_down = True
        terminated: list[str] = []
        for name, proc in self.handles().items():
            if proc.returncode is not None:
                continue
            try:
                proc.terminate()
            except ProcessLookupError:
                continue
            terminated.append(name)
        return terminated

    async def wait_closed(self, timeout: float = SHUTDOWN_TIMEOUT) -> list[str]:
        """Wait up to *timeout* seconds for the processes to exit.

        Returns:
            Names of processes still running afterwards.
        """
        pending = {name: proc for name, proc in self.handles().items() if proc.returncode is None}
        if not pending:
            return []
        waiters = [asyncio.ensure_future(proc.wait()) for proc in pending.values()]
        _, not_done = await asyncio.wait(waiters, timeout=timeout)
        for waiter in not_done:
            waiter.cancel()
        return [name for name, proc in pending.items() if proc.returncode is None]


class DevOrchestrator:
    """Prepares the project and runs both development servers."""

    def __init__(
        self,
        project_dir: str | Path,
        settings: Settings,
        out: Console | None = None,
    ) -> None:
        self.layout = ProjectLayout(Path(project_dir).resolve())
        self.settings = settings
        self.out = out or default_console
        self.session = DevSession()
        self._stop = asyncio.Event()

    # -- Public API --------------------------------------------------------

    async def run(self) -> int:
        """Run the development environment until interrupted.

        Returns:
            Process exit status: 0 after a signal-driven shutdown or a clean
            child exit, 1 when a server exited with an error.

        Raises:
            ConfigError, PortInUseError, ExternalToolError, DevServerError:
                When setup or startup fails.  No server is left running.
        """
        config = read_env(self.layout.root)
        self.out.print("Starting development environment...")

        if not await check_port_available(config.port):
            raise PortInUseError(config.port)

        await ensure_virtualenv(self.layout, self.settings, self.out)
        await install_requirements(self.layout, self.settings, self.out)
        await self.setup_frontend()

        self._install_signal_handlers()
        try:
            if not await self._start_unless_stopped(config):
                return 0
            return await self.wait()
        finally:
            self._remove_signal_handlers()
            await self.stop()

    async def setup_frontend(self) -> None:
        """Install frontend dependencies unless ``node_modules`` is present."""
        if not self.layout.frontend_dir.is_dir():
            raise DevServerError("Frontend directory not found")
        if self.layout.node_modules.is_dir():
            return
        self.out.print("Installing frontend dependencies...")
        await run_checked(
            [self.settings.npm, "install"],
            description="install frontend dependencies",
            cwd=self.layout.frontend_dir,
            timeout=self.settings.command_timeout,
            out=self.out,
        )

    async def start_servers(self, config: ProjectConfig) -> None:
        self.out.print(f"Starting Flask backend on port {config.port}...")
        self.session.backend = await self._spawn(
            "Flask server",
            str(self.layout.venv_flask), "run", "-p", str(config.port),
            cwd=str(self.layout.root),
            env=self._backend_env(),
        )
        await self._confirm_started(self.session.backend, "Flask server")

        self.out.print("Starting React frontend...")
        self.session.frontend = await self._spawn(
            "React development server",
            self.settings.npm, "run", "dev",
            cwd=str(self.layout.frontend_dir),
        )
        await self._confirm_started(self.session.frontend, "React development server")

        print_success("Development servers started successfully!", out=self.out)
        self.out.print(f"Flask backend running on port {config.port}")
        self.out.print("React frontend running (check console for port)")
        self.out.print("Press Ctrl+C to stop both servers")

        if not await wait_for_health(
            f"http://localhost:{config.port}/api/test", timeout=HEALTH_TIMEOUT
        ):
            print_warning(
                f"Warning: backend did not answer /api/test within {HEALTH_TIMEOUT:.0f}s",
                out=self.out,
            )

    async def wait(self) -> int:
        """Block until a server exits or a shutdown signal arrives."""
        waiters = {
            asyncio.ensure_future(proc.wait()): name
            for name, proc in self.session.handles().items()
        }
        stop_waiter = asyncio.ensure_future(self._stop.wait())
        try:
            done, _ = await asyncio.wait(
                [*waiters, stop_waiter], return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stop_waiter.cancel()
            for waiter in waiters:
                if not waiter.done():
                    waiter.cancel()

        if stop_waiter in done:
            return 0

        exit_code = 0
        for waiter in done:
            name = waiters[waiter]
            returncode = waiter.result()
            if returncode != 0:
                print_error(f"Error: {name} server exited with code {returncode}", out=self.out)
                exit_code = 1
            else:
                self.out.print(f"{name.capitalize()} server exited")
        return exit_code

    def request_stop(self) -> None:
        """Signal handler: wake :meth:`wait`."""
        self._stop.set()

    async def stop(self) -> None:
        """Terminate both servers once and give them a moment to exit."""
        if self.session.is_shut_down or not self.session.handles():
            return
        self.out.print("Shutting down development servers...")
        self.session.shutdown()
        for name in await self.session.wait_closed():
            print_warning(f"Warning: {name} server did not exit after termination", out=self.out)

    # -- Internals ---------------------------------------------------------

    def _backend_env(self) -> dict[str, str]:
        return {
            **os.environ,
            "FLASK_APP": "app.py",
            "FLASK_ENV": "development",
            "FLASK_DEBUG": "1",
        }

    async def _start_unless_stopped(self, config: ProjectConfig) -> bool:
        """Run :meth:`start_servers` unless a stop request arrives first.

        Returns ``False`` when the stop request won; whatever was spawned so
        far is left in the session for :meth:`stop`.
        """
        starter = asyncio.ensure_future(self.start_servers(config))
        stop_waiter = asyncio.ensure_future(self._stop.wait())
        try:
            await asyncio.wait([starter, stop_waiter], return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            starter.cancel()
            raise
        finally:
            stop_waiter.cancel()

        if starter.done():
            starter.result()
            return True
        starter.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await starter
        return False

    async def _spawn(self, label: str, *cmd: str, **kwargs) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(*cmd, **kwargs)
        except OSError as exc:
            raise DevServerError(f"{label} could not be started: {cmd[0]}: {exc.strerror or exc}") from exc

    async def _confirm_started(self, proc: asyncio.subprocess.Process, label: str) -> None:
        await asyncio.sleep(self.settings.grace_period)
        if proc.returncode is not None:
            raise DevServerError(f"{label} failed to start (exit {proc.returncode})")

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
            except (NotImplementedError, RuntimeError):
                # Not the main thread, or a platform without signal support.
                pass

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.remove_signal_handler(sig)
            except (NotImplementedError, RuntimeError):
                pass
