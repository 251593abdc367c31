"""Validation of operator input (project name and backend port).

The two ``validate_*`` functions are pure checks that raise
``InputValidationError``.  :func:`collect_value` wraps either of them with the
interactive retry policy: a value supplied on the command line is validated
once, a prompted value may be re-entered up to ``max_attempts`` times.
"""

from __future__ import annotations

import re
from pathlib import Path
from typing import Callable, TypeVar

from rich.console import Console
from rich.prompt import Prompt

from flaskvite.config import MAX_PORT, MIN_PORT, PROJECT_NAME_PATTERN
from flaskvite.errors import InputValidationError
from flaskvite.utils import console as default_console
from flaskvite.utils import print_error

T = TypeVar("T")

_NAME_RE = re.compile(PROJECT_NAME_PATTERN)


def validate_project_name(name: str | None, projects_dir: str | Path) -> str:
    """Check a project name and return it unchanged.

    Raises:
        InputValidationError: ``empty``, ``invalid_chars`` when the name does
            not match ``[A-Za-z0-9_]+``, or ``already_exists`` when a
            directory of that name already exists in *projects_dir*.
    """
    if not name:
        raise InputValidationError("empty", "Project name cannot be empty!")
    if not _NAME_RE.fullmatch(name):
        raise InputValidationError(
            "invalid_chars",
            "Project name can only contain letters, numbers, and underscores",
        )
    if (Path(projects_dir) / name).is_dir():
        raise InputValidationError("already_exists", f"Directory {name} already exists!")
    return name


def validate_port(value: str | int | None) -> int:
    """Check a backend port and return it as an ``int``.

    Raises:
        InputValidationError: ``not_numeric`` or ``out_of_range`` (outside
            ``[1024, 65535]``).
    """
    if isinstance(value, bool):
        raise InputValidationError("not_numeric", "Port must be a number")
    if isinstance(value, int):
        port = value
    else:
        text = (value or "").strip()
        # ASCII only: str.isdigit also accepts superscripts and non-Latin digits
        if not (text.isascii() and text.isdigit()):
            raise InputValidationError(
                "not_numeric",
                f"Please enter a valid port number ({MIN_PORT}-{MAX_PORT})",
            )
        port = int(text)
    if not MIN_PORT <= port <= MAX_PORT:
        raise InputValidationError(
            "out_of_range",
            f"Please enter a valid port number ({MIN_PORT}-{MAX_PORT})",
        )
    return port


def collect_value(
    validator: Callable[[str], T],
    *,
    supplied: str | None,
    prompt: str,
    default: str | None = None,
    max_attempts: int = 3,
    out: Console | None = None,
) -> T:
    """Obtain a validated value, prompting when none was supplied.

    Args:
        validator: Callable raising ``InputValidationError`` on bad input.
        supplied: Value given non-interactively (e.g. a CLI argument).  It is
            validated exactly once; a rejection is raised immediately.
        prompt: Prompt text for interactive entry.
        default: Default offered by the prompt.
        max_attempts: Number of interactive attempts before giving up.
        out: Console used for prompts and messages.

    Raises:
        InputValidationError: The last rejection, once attempts are exhausted.
    """
    out = out or default_console
    if supplied is not None:
        return validator(supplied)

    last_error: InputValidationError | None = None
    for attempt in range(1, max_attempts + 1):
        if default is None:
            answer = Prompt.ask(prompt, console=out)
        else:
            answer = Prompt.ask(prompt, default=default, console=out)
        try:
            return validator(answer)
        except InputValidationError as exc:
            last_error = exc
            print_error(f"Error: {exc}", out=out)
            out.print(f"Attempt {attempt} of {max_attempts}")

    out.print("Maximum attempts reached. Exiting.")
    assert last_error is not None
    raise last_error
