"""flaskvite configuration.

Two layers of configuration live here:

* ``Settings`` -- tool-level knobs (where projects are created, where the
  generation log goes, which unit directory systemd reads).  Pydantic v2 so
  they validate at construction time and can be built from environment
  variables.
* ``ProjectConfig`` -- the per-project record persisted as ``.env`` in the
  project root.  It is the single source of truth for the project name and
  backend port; every command re-reads it with :func:`read_env` rather than
  caching it.

``ProjectLayout`` names every artefact inside a generated project so that no
component has to rely on the current working directory.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from flaskvite.errors import ConfigError

ENV_FILENAME = ".env"
SERVICE_SUFFIX = "_flask_react"
PROJECT_NAME_PATTERN = r"^[A-Za-z0-9_]+$"
MIN_PORT = 1024
MAX_PORT = 65535
DEFAULT_PORT = 5000

REQUIRED_ENV_KEYS: tuple[str, ...] = ("PROJECT_NAME", "FLASK_PORT")


class Settings(BaseModel):
    """Tool-level settings shared by every sub-command.

    Instances are created once by the CLI entry point and passed through the
    rest of the system.
    """

    projects_dir: Path = Field(default=Path("./projects"))
    log_file: Path = Field(default=Path("/tmp/flask_react_setup.log"))
    unit_dir: Path = Field(default=Path("/etc/systemd/system"))
    default_port: int = Field(default=DEFAULT_PORT, ge=MIN_PORT, le=MAX_PORT)
    max_attempts: int = Field(default=3, ge=1, description="Prompt attempts per value")
    grace_period: float = Field(
        default=2.0, ge=0, description="Seconds to wait before checking a dev server is alive"
    )
    python: str = Field(default="python3")
    npm: str = Field(default="npm")
    min_python: tuple[int, int] = Field(default=(3, 8))
    command_timeout: int = Field(
        default=900, ge=10, description="Timeout in seconds for installs and builds"
    )

    @classmethod
    def from_env(cls) -> "Settings":
        """Build ``Settings`` from environment variables.

        Recognised variables (all optional):
            FLASKVITE_PROJECTS_DIR, FLASKVITE_LOG_FILE, FLASKVITE_UNIT_DIR,
            FLASKVITE_GRACE_PERIOD, FLASKVITE_PYTHON, FLASKVITE_NPM,
            FLASKVITE_COMMAND_TIMEOUT.

        Raises:
            ConfigError: ``invalid_value`` when a variable does not parse or
                is out of range.
        """
        kwargs: dict[str, Any] = {}
        if os.environ.get("FLASKVITE_PROJECTS_DIR"):
            kwargs["projects_dir"] = Path(os.environ["FLASKVITE_PROJECTS_DIR"])
        if os.environ.get("FLASKVITE_LOG_FILE"):
            kwargs["log_file"] = Path(os.environ["FLASKVITE_LOG_FILE"])
        if os.environ.get("FLASKVITE_UNIT_DIR"):
            kwargs["unit_dir"] = Path(os.environ["FLASKVITE_UNIT_DIR"])
        if os.environ.get("FLASKVITE_GRACE_PERIOD"):
            kwargs["grace_period"] = os.environ["FLASKVITE_GRACE_PERIOD"]
        if os.environ.get("FLASKVITE_PYTHON"):
            kwargs["python"] = os.environ["FLASKVITE_PYTHON"]
        if os.environ.get("FLASKVITE_NPM"):
            kwargs["npm"] = os.environ["FLASKVITE_NPM"]
        if os.environ.get("FLASKVITE_COMMAND_TIMEOUT"):
            kwargs["command_timeout"] = os.environ["FLASKVITE_COMMAND_TIMEOUT"]
        try:
            return cls(**kwargs)
        except ValidationError as exc:
            raise ConfigError("invalid_value", f"Invalid FLASKVITE_* setting: {exc}") from exc


class ProjectConfig(BaseModel):
    """The environment record stored in a project's ``.env`` file."""

    project_name: str = Field(..., pattern=PROJECT_NAME_PATTERN)
    port: int = Field(default=DEFAULT_PORT, ge=MIN_PORT, le=MAX_PORT)
    flask_env: str | None = None
    flask_debug: str | None = None

    @property
    def service_name(self) -> str:
        """Name of the systemd unit (without the ``.service`` suffix)."""
        return f"{self.project_name}{SERVICE_SUFFIX}"

    def to_env_lines(self) -> list[str]:
        """Return the ``KEY=VALUE`` lines written to ``.env``."""
        lines = [f"FLASK_PORT={self.port}", f"PROJECT_NAME={self.project_name}"]
        if self.flask_env is not None:
            lines.append(f"FLASK_ENV={self.flask_env}")
        if self.flask_debug is not None:
            lines.append(f"FLASK_DEBUG={self.flask_debug}")
        return lines


@dataclass(frozen=True)
class ProjectLayout:
    """Paths of every artefact inside a generated project."""

    root: Path

    @property
    def name(self) -> str:
        return self.root.name

    @property
    def env_file(self) -> Path:
        return self.root / ENV_FILENAME

    @property
    def app_file(self) -> Path:
        return self.root / "app.py"

    @property
    def requirements_file(self) -> Path:
        return self.root / "requirements.txt"

    @property
    def venv_dir(self) -> Path:
        return self.root / ".venv"

    @property
    def venv_bin(self) -> Path:
        return self.venv_dir / "bin"

    @property
    def venv_python(self) -> Path:
        return self.venv_bin / "python"

    @property
    def venv_pip(self) -> Path:
        return self.venv_bin / "pip"

    @property
    def venv_flask(self) -> Path:
        return self.venv_bin / "flask"

    @property
    def frontend_dir(self) -> Path:
        return self.root / "frontend"

    @property
    def package_json(self) -> Path:
        return self.frontend_dir / "package.json"

    @property
    def vite_config(self) -> Path:
        return self.frontend_dir / "vite.config.js"

    @property
    def node_modules(self) -> Path:
        return self.frontend_dir / "node_modules"

    @property
    def dist_dir(self) -> Path:
        return self.frontend_dir / "dist"

    @property
    def dev_script(self) -> Path:
        return self.root / "start_dev.sh"

    @property
    def manager_script(self) -> Path:
        return self.root / "service_manager.sh"

    @property
    def install_script(self) -> Path:
        return self.root / "install_service.sh"

    @property
    def gitignore(self) -> Path:
        return self.root / ".gitignore"

    @property
    def readme(self) -> Path:
        return self.root / "README.md"

    @property
    def scripts(self) -> tuple[Path, ...]:
        """The three operator-facing launcher scripts."""
        return (self.dev_script, self.manager_script, self.install_script)


# ---------------------------------------------------------------------------
# .env store
# ---------------------------------------------------------------------------


def write_env(root: str | Path, config: ProjectConfig) -> Path:
    """Write *config* as ``KEY=VALUE`` lines to ``<root>/.env``.

    Returns:
        The path written.

    Raises:
        OSError: If the project root is not writable.
    """
    target = Path(root) / ENV_FILENAME
    target.write_text("\n".join(config.to_env_lines()) + "\n", encoding="utf-8")
    return target


def parse_env_text(text: str) -> dict[str, str]:
    """Parse ``KEY=VALUE`` lines, ignoring blanks and ``#`` comments."""
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        if line.startswith("export "):
            line = line[len("export "):]
        key, _, value = line.partition("=")
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        values[key.strip()] = value
    return values


def read_env(root: str | Path) -> ProjectConfig:
    """Load the ``ProjectConfig`` stored in ``<root>/.env``.

    Raises:
        ConfigError: ``missing_file`` when there is no ``.env``,
            ``missing_required_key`` when ``PROJECT_NAME`` or ``FLASK_PORT``
            is absent or empty, ``invalid_value`` when a value fails
            validation (e.g. a non-numeric port).
    """
    env_path = Path(root) / ENV_FILENAME
    if not env_path.is_file():
        raise ConfigError("missing_file", f"Configuration file {env_path} not found!")

    values = parse_env_text(env_path.read_text(encoding="utf-8"))
    for key in REQUIRED_ENV_KEYS:
        if not values.get(key):
            raise ConfigError(
                "missing_required_key",
                f"Missing required configuration variable {key} in {env_path}",
            )

    try:
        return ProjectConfig(
            project_name=values["PROJECT_NAME"],
            port=values["FLASK_PORT"],
            flask_env=values.get("FLASK_ENV"),
            flask_debug=values.get("FLASK_DEBUG"),
        )
    except ValidationError as exc:
        raise ConfigError("invalid_value", f"Invalid configuration in {env_path}: {exc}") from exc
