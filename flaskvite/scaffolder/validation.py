"""Stage validation checklists for generated projects.

Each check only inspects the file system, so running it twice without an
intervening change yields the same result.
"""

from __future__ import annotations

from flaskvite.config import ProjectLayout
from flaskvite.utils import is_executable

STAGE_A = "stage_a"
STAGE_B = "stage_b"


def _check_frontend(layout: ProjectLayout) -> list[str]:
    if not layout.frontend_dir.is_dir():
        return ["Frontend directory is missing"]
    if not layout.package_json.is_file() or not layout.vite_config.is_file():
        return ["Frontend configuration is incomplete"]
    return []


def check_stage_a(layout: ProjectLayout) -> list[str]:
    """Checklist after the backend and frontend scaffolds."""
    violations: list[str] = []
    if not layout.app_file.is_file():
        violations.append("Flask application file is missing")
    if not layout.requirements_file.is_file():
        violations.append("Python requirements file is missing")
    if not layout.venv_dir.is_dir():
        violations.append("Virtual environment is missing")
    if not layout.frontend_dir.is_dir():
        violations.append("Frontend directory is missing")
    if not layout.package_json.is_file():
        violations.append("Frontend package.json is missing")
    if not layout.vite_config.is_file():
        violations.append("Vite configuration is missing")
    return violations


def check_stage_b(layout: ProjectLayout) -> list[str]:
    """Checklist for the finished project."""
    violations: list[str] = []
    required = (
        layout.env_file,
        layout.app_file,
        layout.requirements_file,
        *layout.scripts,
        layout.gitignore,
        layout.readme,
    )
    for path in required:
        if not path.is_file():
            violations.append(f"Required file {path.name} is missing")
    for script in layout.scripts:
        if script.is_file() and not is_executable(script):
            violations.append(f"Script {script.name} is not executable")
    violations.extend(_check_frontend(layout))
    return violations


_CHECKS = {
    STAGE_A: check_stage_a,
    STAGE_B: check_stage_b,
}


def check_stage(layout: ProjectLayout, stage: str) -> list[str]:
    """Return the violations for *stage* (``stage_a`` or ``stage_b``)."""
    try:
        check = _CHECKS[stage]
    except KeyError:
        raise ValueError(f"Unknown validation stage: {stage}") from None
    return check(layout)


def count_violations(layout: ProjectLayout, stage: str) -> int:
    """Number of violations for *stage*; 0 means the stage passed."""
    return len(check_stage(layout, stage))
