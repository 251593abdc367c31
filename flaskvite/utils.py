"""Shared utility functions for flaskvite.

Provides async command execution, file-system helpers, Rich-based console
reporting, port checks, and health-check polling.  Every public function is
designed to be safe and side-effect-free where possible, with clear error
messages when something goes wrong.
"""

from __future__ import annotations

import asyncio
import errno
import os
import socket
import stat
from pathlib import Path

import httpx
from rich.console import Console
from rich.rule import Rule
from rich.table import Table

from flaskvite.errors import ExternalToolError

console = Console()

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: str | list[str],
    cwd: str | Path | None = None,
    timeout: float | None = 120,
    capture: bool = True,
    env: dict[str, str] | None = None,
    input_text: str | None = None,
) -> tuple[int, str, str]:
    """Run a command asynchronously.

    Args:
        cmd: Shell command string or list of arguments.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
            ``None`` waits indefinitely (used for ``journalctl -f``).
        capture: Whether to capture stdout/stderr (if ``False`` they inherit
            the parent's streams).
        env: Optional extra environment variables merged on top of ``os.environ``.
        input_text: Optional text written to the child's stdin.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  If *capture* is ``False``
        the stdout/stderr strings will be empty.

    Raises:
        ExternalToolError: When the program cannot be started at all
            (not installed, or not executable).
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    stdout_pipe = asyncio.subprocess.PIPE if capture else None
    stderr_pipe = asyncio.subprocess.PIPE if capture else None
    stdin_pipe = asyncio.subprocess.PIPE if input_text is not None else None

    try:
        if isinstance(cmd, list):
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=stdin_pipe,
                stdout=stdout_pipe,
                stderr=stderr_pipe,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
        else:
            process = await asyncio.create_subprocess_shell(
                cmd,
                stdin=stdin_pipe,
                stdout=stdout_pipe,
                stderr=stderr_pipe,
                cwd=str(cwd) if cwd else None,
                env=merged_env,
            )
    except FileNotFoundError as exc:
        raise ExternalToolError(
            f"Command not found: {_program(cmd)}",
            command=format_command(cmd),
            returncode=127,
        ) from exc
    except PermissionError as exc:
        raise ExternalToolError(
            f"Permission denied running: {_program(cmd)}",
            command=format_command(cmd),
            returncode=126,
        ) from exc

    payload = input_text.encode("utf-8") if input_text is not None else None
    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(payload), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (
            -1,
            "",
            f"Command timed out after {timeout}s: {format_command(cmd)}",
        )

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


def format_command(cmd: str | list[str]) -> str:
    """Render a command for messages."""
    return cmd if isinstance(cmd, str) else " ".join(str(part) for part in cmd)


def _program(cmd: str | list[str]) -> str:
    if isinstance(cmd, str):
        return cmd.split(maxsplit=1)[0] if cmd.strip() else cmd
    return str(cmd[0]) if cmd else ""


async def run_checked(
    cmd: list[str],
    *,
    description: str,
    cwd: str | Path | None = None,
    timeout: float | None = 120,
    env: dict[str, str] | None = None,
    input_text: str | None = None,
    out: Console | None = None,
    error_cls: type[ExternalToolError] = ExternalToolError,
) -> str:
    """Run *cmd*, echo its output, and raise if it fails.

    Args:
        cmd: Argument list.
        description: Short phrase used in the failure message
            (e.g. ``"install Python dependencies"``).
        error_cls: ``ExternalToolError`` subclass to raise.

    Returns:
        The captured stdout.

    Raises:
        ExternalToolError: When the command exits non-zero, times out, or
            cannot be started.
    """
    try:
        returncode, stdout, stderr = await run_command(
            cmd, cwd=cwd, timeout=timeout, env=env, input_text=input_text
        )
    except ExternalToolError as exc:
        if isinstance(exc, error_cls):
            raise
        raise error_cls(str(exc), command=exc.command, returncode=exc.returncode) from exc
    print_tool_output(stdout, stderr, out=out)
    if returncode != 0:
        raise error_cls(
            f"Failed to {description} (exit {returncode}): {format_command(cmd)}",
            command=format_command(cmd),
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
        )
    return stdout


# ---------------------------------------------------------------------------
# File-system helpers
# ---------------------------------------------------------------------------


def make_executable(path: Path) -> None:
    """Set the executable bit on a file."""
    current = path.stat().st_mode
    path.chmod(current | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def is_executable(path: Path) -> bool:
    """Return ``True`` if *path* is a regular file the current user may execute."""
    return path.is_file() and os.access(path, os.X_OK)


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(title: str, out: Console | None = None, color: str = "bright_cyan") -> None:
    """Print a full-width rule announcing a stage."""
    out = out or console
    out.print()
    out.print(Rule(f"[bold {color}] {title} [/bold {color}]", style=color))


def print_summary_table(
    data: dict[str, str], title: str = "Summary", out: Console | None = None
) -> None:
    """Print a two-column key/value summary table.

    Args:
        data: Mapping of label -> value.
        title: Table title.
        out: Console to print on (defaults to the module console).
    """
    out = out or console
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    out.print(table)
    out.print()


def print_success(message: str, out: Console | None = None) -> None:
    """Print a green success message."""
    (out or console).print(f"[bold green]{message}[/bold green]")


def print_error(message: str, out: Console | None = None) -> None:
    """Print a red error message."""
    (out or console).print(f"[bold red]{message}[/bold red]")


def print_warning(message: str, out: Console | None = None) -> None:
    """Print a yellow warning message."""
    (out or console).print(f"[bold yellow]{message}[/bold yellow]")


def print_tool_output(stdout: str, stderr: str, out: Console | None = None) -> None:
    """Echo captured tool output dimmed so it lands in recorded transcripts."""
    out = out or console
    for chunk in (stdout, stderr):
        if chunk:
            out.print(chunk, style="dim", markup=False, highlight=False)


# ---------------------------------------------------------------------------
# Port helpers
# ---------------------------------------------------------------------------


_BIND_ADDRESSES = ((socket.AF_INET, "0.0.0.0"), (socket.AF_INET6, "::"))


async def check_port_available(port: int) -> bool:
    """Check whether a TCP port is free to bind.

    Binds the wildcard address for IPv4 and, where the host supports it,
    IPv6.  A listener on any interface (``127.0.0.1``, ``0.0.0.0``, ``::1``)
    makes the bind fail with ``EADDRINUSE``.  ``SO_REUSEADDR`` is set so
    sockets lingering in ``TIME_WAIT`` do not count as in use.

    Returns:
        ``True`` if nothing holds the port.
    """
    loop = asyncio.get_running_loop()

    def _bind_free() -> bool:
        for family, address in _BIND_ADDRESSES:
            try:
                sock = socket.socket(family, socket.SOCK_STREAM)
            except OSError:
                continue  # address family not supported
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
                if family == socket.AF_INET6:
                    sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_V6ONLY, 1)
                sock.bind((address, port))
            except OSError as exc:
                # IPv6 disabled on this host
                if exc.errno in (errno.EADDRNOTAVAIL, errno.EAFNOSUPPORT):
                    continue
                return False
            finally:
                sock.close()
        return True

    return await loop.run_in_executor(None, _bind_free)


# ---------------------------------------------------------------------------
# Health-check polling
# ---------------------------------------------------------------------------


async def wait_for_health(
    url: str,
    timeout: float = 30,
    interval: float = 1,
) -> bool:
    """Poll a health endpoint until it responds with HTTP 200 or timeout.

    Args:
        url: Fully-qualified URL (e.g. ``http://localhost:5000/api/test``).
        timeout: Maximum seconds to wait.
        interval: Seconds between requests.

    Returns:
        ``True`` if a 200 response was received within the timeout window,
        ``False`` otherwise.
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout

    async with httpx.AsyncClient(timeout=httpx.Timeout(5.0, connect=3.0)) as client:
        while loop.time() < deadline:
            try:
                response = await client.get(url)
                if response.status_code == 200:
                    return True
            except httpx.HTTPError:
                pass

            remaining = deadline - loop.time()
            if remaining <= 0:
                break
            await asyncio.sleep(min(interval, remaining))

    return False
