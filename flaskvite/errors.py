"""Exception hierarchy for flaskvite.

Every error the tool raises on purpose derives from ``FlaskViteError`` so the
CLI can report it uniformly and exit non-zero.  File-system failures are left
as the built-in ``OSError`` (its message already names the path).
"""

from __future__ import annotations


class FlaskViteError(Exception):
    """Base class for all flaskvite errors."""


class InputValidationError(FlaskViteError):
    """A project name or port supplied by the operator was rejected.

    ``kind`` is one of ``empty``, ``invalid_chars``, ``already_exists``,
    ``not_numeric`` or ``out_of_range``.
    """

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class ConfigError(FlaskViteError):
    """A project ``.env`` file or a ``FLASKVITE_*`` variable is unusable.

    ``kind`` is one of ``missing_file``, ``missing_required_key`` or
    ``invalid_value``.
    """

    def __init__(self, kind: str, message: str) -> None:
        self.kind = kind
        super().__init__(message)


class PreconditionError(FlaskViteError):
    """A required runtime, tool, or privilege level is not available."""

    def __init__(self, problems: list[str]) -> None:
        self.problems = list(problems)
        super().__init__("; ".join(self.problems) or "System requirements not met")


class ExternalToolError(FlaskViteError):
    """An external command (pip, npm, venv, ...) exited with a failure."""

    def __init__(
        self,
        message: str,
        command: str = "",
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(message)


class SupervisorError(ExternalToolError):
    """A ``systemctl``/``journalctl``/``sudo`` invocation failed."""


class StageValidationError(FlaskViteError):
    """A generation stage left the project layout incomplete."""

    def __init__(self, stage: str, violations: list[str]) -> None:
        self.stage = stage
        self.violations = list(violations)
        super().__init__(
            f"Validation of {stage} failed with {len(self.violations)} error(s): "
            + "; ".join(self.violations)
        )


class GenerationError(FlaskViteError):
    """Raised once project generation has failed and been rolled back."""

    def __init__(self, stage: str, message: str, rolled_back: bool = False) -> None:
        self.stage = stage
        self.rolled_back = rolled_back
        super().__init__(f"Stage '{stage}' failed: {message}")


class PortInUseError(FlaskViteError):
    """The configured backend port is already bound by another process."""

    def __init__(self, port: int) -> None:
        self.port = port
        super().__init__(f"Port {port} is already in use")


class DevServerError(FlaskViteError):
    """A development server could not be prepared or exited during startup."""


class InstallStepError(FlaskViteError):
    """One step of the systemd service installation failed."""

    def __init__(self, step: str, message: str) -> None:
        self.step = step
        super().__init__(f"Failed to {step}: {message}")
