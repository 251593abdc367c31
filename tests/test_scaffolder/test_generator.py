"""Tests for the project generation pipeline.

Covers:
- Happy path: every artefact present, final validation clean, log written
- Name collision: rejected before anything is created
- Mid-pipeline failures: the project directory is removed
- Interactive input collection
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest
from rich.console import Console

from flaskvite.config import ProjectLayout, Settings, read_env
from flaskvite.errors import ExternalToolError, GenerationError, PreconditionError
from flaskvite.scaffolder.generator import STAGE_TITLES, GenerationStage, ProjectGenerator
from flaskvite.scaffolder.validation import STAGE_B, check_stage

pytestmark = pytest.mark.unit


# ---------------------------------------------------------------------------
# Fakes for external tools
# ---------------------------------------------------------------------------


async def fake_backend_run(cmd, *, cwd=None, **kwargs):
    """Stands in for python -m venv / pip install."""
    if "venv" in cmd:
        (Path(cmd[-1]) / "bin").mkdir(parents=True)
    return ""


async def fake_frontend_run(cmd, *, cwd=None, **kwargs):
    """Stands in for npm create vite / npm install."""
    if cmd[1] == "create":
        frontend = Path(cwd) / "frontend"
        frontend.mkdir()
        (frontend / "package.json").write_text('{"name": "frontend"}\n', encoding="utf-8")
    return ""


@pytest.fixture
def recording_console() -> Console:
    return Console(file=io.StringIO(), record=True, width=120, color_system=None)


@pytest.fixture
def generator(settings: Settings, recording_console: Console) -> ProjectGenerator:
    return ProjectGenerator(
        settings, out=recording_console, python_executable="/usr/bin/python3"
    )


@pytest.fixture
def fake_tools():
    """Patch preflight and every external command the pipeline runs."""
    backend = AsyncMock(side_effect=fake_backend_run)
    frontend = AsyncMock(side_effect=fake_frontend_run)
    with patch("flaskvite.scaffolder.generator.check_requirements", AsyncMock()), \
         patch("flaskvite.scaffolder.backend_gen.run_checked", backend), \
         patch("flaskvite.scaffolder.frontend_gen.run_checked", frontend):
        yield {"backend": backend, "frontend": frontend}


# ---------------------------------------------------------------------------
# Stage table
# ---------------------------------------------------------------------------


class TestStages:
    def test_every_stage_has_a_title(self):
        assert set(STAGE_TITLES) == set(GenerationStage)

    def test_stage_order(self, generator: ProjectGenerator):
        order = [stage for stage, _ in generator._stages()]
        assert order == list(GenerationStage)
        assert order.index(GenerationStage.COLLECT_INPUTS) < order.index(GenerationStage.CREATE_PROJECT)
        assert order[-1] is GenerationStage.VALIDATE_STAGE_B


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestGenerateHappyPath:
    @pytest.mark.asyncio
    async def test_generates_complete_project(
        self, generator: ProjectGenerator, settings: Settings, fake_tools
    ):
        root = await generator.generate("demo", 5000)

        assert root == (settings.projects_dir / "demo").resolve()
        layout = ProjectLayout(root)
        assert check_stage(layout, STAGE_B) == []
        assert layout.env_file.read_text(encoding="utf-8") == "FLASK_PORT=5000\nPROJECT_NAME=demo\n"
        assert read_env(root).service_name == "demo_flask_react"
        assert "http://localhost:5000" in layout.vite_config.read_text(encoding="utf-8")

    @pytest.mark.asyncio
    async def test_creates_projects_dir(self, generator: ProjectGenerator, settings: Settings, fake_tools):
        assert not settings.projects_dir.exists()
        await generator.generate("demo", "6000")
        assert settings.projects_dir.is_dir()

    @pytest.mark.asyncio
    async def test_log_file_receives_transcript(
        self, generator: ProjectGenerator, settings: Settings, fake_tools
    ):
        await generator.generate("demo", 5000)
        log = settings.log_file.read_text(encoding="utf-8")
        assert "Creating Flask backend" in log
        assert "Final setup completed successfully!" in log

    @pytest.mark.asyncio
    async def test_prompts_when_values_not_supplied(
        self, generator: ProjectGenerator, settings: Settings, fake_tools
    ):
        with patch("flaskvite.validators.Prompt.ask", side_effect=["bad-name", "demo", "7000"]):
            root = await generator.generate()
        assert read_env(root).port == 7000
        assert root.name == "demo"


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------


class TestGenerateFailures:
    @pytest.mark.asyncio
    async def test_name_collision_creates_nothing(
        self, generator: ProjectGenerator, settings: Settings, fake_tools
    ):
        existing = settings.projects_dir / "taken"
        existing.mkdir(parents=True)
        (existing / "keep.txt").write_text("mine", encoding="utf-8")

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("taken", 5000)

        assert exc_info.value.stage == GenerationStage.COLLECT_INPUTS.value
        assert exc_info.value.rolled_back is False
        assert sorted(p.name for p in existing.iterdir()) == ["keep.txt"]
        fake_tools["backend"].assert_not_awaited()

    @pytest.mark.asyncio
    async def test_precondition_failure_writes_nothing(self, generator: ProjectGenerator, settings: Settings):
        with patch(
            "flaskvite.scaffolder.generator.check_requirements",
            AsyncMock(side_effect=PreconditionError(["npm is not installed. Please install npm."])),
        ):
            with pytest.raises(GenerationError) as exc_info:
                await generator.generate("demo", 5000)
        assert exc_info.value.stage == "check_requirements"
        assert isinstance(exc_info.value.__cause__, PreconditionError)
        assert not settings.projects_dir.exists()

    @pytest.mark.asyncio
    async def test_frontend_failure_removes_project(
        self, generator: ProjectGenerator, settings: Settings, recording_console: Console
    ):
        failing = AsyncMock(side_effect=ExternalToolError("Failed to create React project"))
        with patch("flaskvite.scaffolder.generator.check_requirements", AsyncMock()), \
             patch("flaskvite.scaffolder.backend_gen.run_checked", AsyncMock(side_effect=fake_backend_run)), \
             patch("flaskvite.scaffolder.frontend_gen.run_checked", failing):
            with pytest.raises(GenerationError) as exc_info:
                await generator.generate("demo", 5000)

        assert exc_info.value.stage == "frontend"
        assert exc_info.value.rolled_back is True
        assert not (settings.projects_dir / "demo").exists()
        log = settings.log_file.read_text(encoding="utf-8")
        assert "Error occurred during stage 'frontend'" in log
        assert "Removed project directory" in log

    @pytest.mark.asyncio
    async def test_validation_failure_removes_project(
        self, generator: ProjectGenerator, settings: Settings
    ):
        async def npm_without_package_json(cmd, *, cwd=None, **kwargs):
            if cmd[1] == "create":
                (Path(cwd) / "frontend").mkdir()
            return ""

        with patch("flaskvite.scaffolder.generator.check_requirements", AsyncMock()), \
             patch("flaskvite.scaffolder.backend_gen.run_checked", AsyncMock(side_effect=fake_backend_run)), \
             patch("flaskvite.scaffolder.frontend_gen.run_checked", AsyncMock(side_effect=npm_without_package_json)):
            with pytest.raises(GenerationError) as exc_info:
                await generator.generate("demo", 5000)

        assert exc_info.value.stage == "validate_stage_a"
        assert "package.json" in str(exc_info.value)
        assert not (settings.projects_dir / "demo").exists()

    @pytest.mark.asyncio
    async def test_cancellation_still_removes_project(self, generator: ProjectGenerator, settings: Settings):
        with patch("flaskvite.scaffolder.generator.check_requirements", AsyncMock()), \
             patch("flaskvite.scaffolder.backend_gen.run_checked", AsyncMock(side_effect=asyncio.CancelledError)):
            with pytest.raises(asyncio.CancelledError):
                await generator.generate("demo", 5000)
        assert not (settings.projects_dir / "demo").exists()
