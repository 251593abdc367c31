"""Shared pytest fixtures for the flaskvite test suite.

Provides reusable fixtures for:
- Temporary projects roots and ``Settings`` pointing at them
- Recording consoles whose output can be asserted on
- Generated project layouts (with or without a ``.env``)
- Mock subprocess helpers
"""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from rich.console import Console

from flaskvite.config import ProjectConfig, ProjectLayout, Settings, write_env


# ---------------------------------------------------------------------------
# Settings & Consoles
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in a temporary directory, with no grace period."""
    return Settings(
        projects_dir=tmp_path / "projects",
        log_file=tmp_path / "logs" / "setup.log",
        unit_dir=tmp_path / "units",
        grace_period=0,
    )


@pytest.fixture
def out() -> Console:
    """A console writing to an in-memory buffer.

    Read what was printed with ``out.file.getvalue()``.
    """
    return Console(file=io.StringIO(), width=120, force_terminal=False, color_system=None)


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------

@pytest.fixture
def project_config() -> ProjectConfig:
    return ProjectConfig(project_name="demo_app", port=5055)


@pytest.fixture
def project_layout(tmp_path: Path, project_config: ProjectConfig) -> ProjectLayout:
    """An existing project directory holding only its ``.env``."""
    root = tmp_path / "projects" / project_config.project_name
    root.mkdir(parents=True)
    write_env(root, project_config)
    return ProjectLayout(root)


@pytest.fixture
def complete_layout(project_layout: ProjectLayout) -> ProjectLayout:
    """A project with every artefact the final validation expects."""
    layout = project_layout
    for path in (layout.app_file, layout.requirements_file, layout.gitignore, layout.readme):
        path.write_text("x\n", encoding="utf-8")
    layout.venv_bin.mkdir(parents=True)
    layout.frontend_dir.mkdir()
    layout.package_json.write_text("{}\n", encoding="utf-8")
    layout.vite_config.write_text("export default {}\n", encoding="utf-8")
    for script in layout.scripts:
        script.write_text("#!/bin/bash\n", encoding="utf-8")
        script.chmod(0o755)
    return layout


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int | None = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.terminate = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory
