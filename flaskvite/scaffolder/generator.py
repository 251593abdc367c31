"""Main scaffolding orchestrator.

Drives project generation as an ordered list of stages and makes it
transactional: once the project directory has been created, any failure
removes the whole directory before the error is reported, so an aborted run
never leaves a partial project behind.

Stages::

    check_requirements -> collect_inputs -> create_project -> backend ->
    frontend -> validate_stage_a -> service_manager_script -> install_script ->
    dev_script -> final_metadata -> validate_stage_b
"""

from __future__ import annotations

import asyncio
import shutil
import time
from enum import Enum
from pathlib import Path
from typing import Awaitable, Callable

from rich.console import Console
from rich.panel import Panel

from flaskvite.config import ProjectConfig, ProjectLayout, Settings, write_env
from flaskvite.errors import GenerationError, StageValidationError
from flaskvite.preflight import check_requirements
from flaskvite.utils import (
    format_duration,
    print_error,
    print_stage_header,
    print_success,
    print_summary_table,
    print_warning,
)
from flaskvite.validators import collect_value, validate_port, validate_project_name

from .backend_gen import BackendScaffolder
from .frontend_gen import FrontendScaffolder
from .scripts_gen import ScriptGenerator
from .templates import TemplateRenderer
from .validation import STAGE_A, STAGE_B, check_stage


class GenerationStage(str, Enum):
    """Ordered stages of project generation."""

    CHECK_REQUIREMENTS = "check_requirements"
    COLLECT_INPUTS = "collect_inputs"
    CREATE_PROJECT = "create_project"
    BACKEND = "backend"
    FRONTEND = "frontend"
    VALIDATE_STAGE_A = "validate_stage_a"
    SERVICE_MANAGER_SCRIPT = "service_manager_script"
    INSTALL_SCRIPT = "install_script"
    DEV_SCRIPT = "dev_script"
    FINAL_METADATA = "final_metadata"
    VALIDATE_STAGE_B = "validate_stage_b"


STAGE_TITLES: dict[GenerationStage, str] = {
    GenerationStage.CHECK_REQUIREMENTS: "Checking system requirements",
    GenerationStage.COLLECT_INPUTS: "Project settings",
    GenerationStage.CREATE_PROJECT: "Creating project directory",
    GenerationStage.BACKEND: "Creating Flask backend",
    GenerationStage.FRONTEND: "Creating React frontend",
    GenerationStage.VALIDATE_STAGE_A: "Validating setup",
    GenerationStage.SERVICE_MANAGER_SCRIPT: "Creating service manager script",
    GenerationStage.INSTALL_SCRIPT: "Creating service installation script",
    GenerationStage.DEV_SCRIPT: "Creating development startup script",
    GenerationStage.FINAL_METADATA: "Creating final configuration files",
    GenerationStage.VALIDATE_STAGE_B: "Validating final setup",
}


class ProjectGenerator:
    """Generates a Flask + Vite project with systemd management scripts.

    Attributes:
        settings: Tool-level settings (projects root, log file, ...).
        out: Console used for all output.  A recording console is used by
            default so the transcript can be appended to the log file.
        config: The collected ``ProjectConfig`` (set during ``collect_inputs``).
        layout: Layout of the project being generated.
    """

    def __init__(
        self,
        settings: Settings,
        out: Console | None = None,
        renderer: TemplateRenderer | None = None,
        python_executable: str | None = None,
    ) -> None:
        self.settings = settings
        self.out = out or Console(record=True)
        self.renderer = renderer or TemplateRenderer()
        self.backend = BackendScaffolder(self.renderer, settings, self.out)
        self.frontend = FrontendScaffolder(self.renderer, settings, self.out)
        self.scripts = ScriptGenerator(self.renderer, python_executable)

        self.config: ProjectConfig | None = None
        self.layout: ProjectLayout | None = None
        self._created_root = False
        self._requested_name: str | None = None
        self._requested_port: str | None = None

    # -- Public API --------------------------------------------------------

    async def generate(
        self,
        project_name: str | None = None,
        port: str | int | None = None,
    ) -> Path:
        """Run every stage and return the root of the generated project.

        Args:
            project_name: Name given on the command line; prompted for when
                ``None``.  A supplied name is validated once, without retry.
            port: Backend port given on the command line; prompted for when
                ``None``.

        Raises:
            GenerationError: When any stage fails.  If the project directory
                had been created it no longer exists.
        """
        self._requested_name = project_name
        self._requested_port = None if port is None else str(port)
        self._created_root = False

        self.out.print(
            Panel(
                "[bold bright_cyan]SystemD-Auto-Flask-Vite Project Generator[/bold bright_cyan]\n"
                f"Projects : {self.settings.projects_dir.resolve()}\n"
                f"Log file : {self.settings.log_file}",
                border_style="bright_cyan",
            )
        )

        started = time.monotonic()
        stage = GenerationStage.CHECK_REQUIREMENTS
        try:
            for stage, action in self._stages():
                print_stage_header(STAGE_TITLES[stage], out=self.out)
                await action()
        except BaseException as exc:
            rolled_back = self._handle_failure(stage, exc)
            self._write_log()
            if isinstance(exc, Exception):
                raise GenerationError(stage.value, str(exc), rolled_back=rolled_back) from exc
            raise

        assert self.layout is not None and self.config is not None
        self._print_final_summary(time.monotonic() - started)
        self._write_log()
        return self.layout.root

    # -- Stage table -------------------------------------------------------

    def _stages(self) -> list[tuple[GenerationStage, Callable[[], Awaitable[None]]]]:
        return [
            (GenerationStage.CHECK_REQUIREMENTS, self._check_requirements),
            (GenerationStage.COLLECT_INPUTS, self._collect_inputs),
            (GenerationStage.CREATE_PROJECT, self._create_project),
            (GenerationStage.BACKEND, self._scaffold_backend),
            (GenerationStage.FRONTEND, self._scaffold_frontend),
            (GenerationStage.VALIDATE_STAGE_A, self._validate_stage_a),
            (GenerationStage.SERVICE_MANAGER_SCRIPT, self._write_service_manager),
            (GenerationStage.INSTALL_SCRIPT, self._write_install_script),
            (GenerationStage.DEV_SCRIPT, self._write_dev_script),
            (GenerationStage.FINAL_METADATA, self._write_metadata),
            (GenerationStage.VALIDATE_STAGE_B, self._validate_stage_b),
        ]

    # -- Stages ------------------------------------------------------------

    async def _check_requirements(self) -> None:
        await check_requirements(self.settings)
        self.out.print("  [green]+[/green] All system requirements met")

    async def _collect_inputs(self) -> None:
        projects_dir = self.settings.projects_dir
        name = collect_value(
            lambda value: validate_project_name(value, projects_dir),
            supplied=self._requested_name,
            prompt="Enter project name",
            max_attempts=self.settings.max_attempts,
            out=self.out,
        )
        port = collect_value(
            validate_port,
            supplied=self._requested_port,
            prompt="Enter port number for Flask backend",
            default=str(self.settings.default_port),
            max_attempts=self.settings.max_attempts,
            out=self.out,
        )
        self.config = ProjectConfig(project_name=name, port=port)
        self.layout = ProjectLayout(self.settings.projects_dir.resolve() / name)

    async def _create_project(self) -> None:
        config, layout = self._require_inputs()
        self.out.print(f"Creating project directory in: {layout.root.parent}")
        layout.root.parent.mkdir(parents=True, exist_ok=True)
        # exist_ok=False: rollback must only ever remove a directory this run created.
        layout.root.mkdir()
        self._created_root = True

        self.out.print("Creating configuration...")
        await asyncio.to_thread(write_env, layout.root, config)

    async def _scaffold_backend(self) -> None:
        config, layout = self._require_inputs()
        await self.backend.scaffold(layout, config)

    async def _scaffold_frontend(self) -> None:
        config, layout = self._require_inputs()
        await self.frontend.scaffold(layout, config)

    async def _validate_stage_a(self) -> None:
        self._validate(STAGE_A)

    async def _write_service_manager(self) -> None:
        config, layout = self._require_inputs()
        await self.scripts.generate_service_manager(layout, config)

    async def _write_install_script(self) -> None:
        config, layout = self._require_inputs()
        await self.scripts.generate_install_script(layout, config)

    async def _write_dev_script(self) -> None:
        config, layout = self._require_inputs()
        await self.scripts.generate_dev_script(layout, config)

    async def _write_metadata(self) -> None:
        config, layout = self._require_inputs()
        await self.scripts.generate_metadata(layout, config)

    async def _validate_stage_b(self) -> None:
        self._validate(STAGE_B)

    # -- Helpers -----------------------------------------------------------

    def _require_inputs(self) -> tuple[ProjectConfig, ProjectLayout]:
        if self.config is None or self.layout is None:
            raise RuntimeError("Project inputs have not been collected")
        return self.config, self.layout

    def _validate(self, stage: str) -> None:
        _, layout = self._require_inputs()
        violations = check_stage(layout, stage)
        for violation in violations:
            print_error(f"Error: {violation}", out=self.out)
        if violations:
            raise StageValidationError(stage, violations)
        self.out.print("  [green]+[/green] Validation passed")

    def _handle_failure(self, stage: GenerationStage, exc: BaseException) -> bool:
        """Report *exc* and remove the project directory if this run created it.

        Returns:
            ``True`` if a project directory was removed.
        """
        reason = str(exc) or type(exc).__name__
        print_error(f"Error occurred during stage '{stage.value}': {reason}", out=self.out)
        print_error(f"Check the log file at {self.settings.log_file} for details", out=self.out)

        if not self._created_root or self.layout is None:
            return False
        root = self.layout.root
        if not root.exists():
            return False

        self.out.print("Cleaning up project directory...")
        try:
            shutil.rmtree(root)
        except OSError as cleanup_exc:
            print_warning(f"Warning: Failed to remove {root}: {cleanup_exc}", out=self.out)
            return False
        self.out.print(f"Removed project directory {root}")
        return True

    def _write_log(self) -> None:
        """Append the recorded console transcript to the log file."""
        if not getattr(self.out, "record", False):
            return
        transcript = self.out.export_text(clear=True)
        try:
            self.settings.log_file.parent.mkdir(parents=True, exist_ok=True)
            with self.settings.log_file.open("a", encoding="utf-8") as handle:
                handle.write(transcript)
        except OSError as exc:
            print_warning(f"Warning: Could not write log file {self.settings.log_file}: {exc}", out=self.out)

    def _print_final_summary(self, elapsed: float) -> None:
        config, layout = self._require_inputs()
        print_success("Final setup completed successfully!", out=self.out)
        print_summary_table(
            {
                "Project": config.project_name,
                "Location": str(layout.root),
                "Flask port": str(config.port),
                "systemd unit": f"{config.service_name}.service",
                "Development": f"./{layout.dev_script.name}",
                "Service management": f"./{layout.manager_script.name}",
                "Duration": format_duration(elapsed),
            },
            title="Your project is ready to use",
            out=self.out,
        )
