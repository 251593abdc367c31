"""Unit tests for operator input validation (flaskvite.validators)."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
from rich.console import Console

from flaskvite.errors import InputValidationError
from flaskvite.validators import collect_value, validate_port, validate_project_name


class TestValidateProjectName:
    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["app", "My_App_2", "_", "A1"])
    def test_accepts_identifiers(self, tmp_path: Path, name: str):
        assert validate_project_name(name, tmp_path) == name

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["my-app", "my app", "app.v2", "naïve"])
    def test_rejects_other_characters(self, tmp_path: Path, name: str):
        with pytest.raises(InputValidationError) as exc_info:
            validate_project_name(name, tmp_path)
        assert exc_info.value.kind == "invalid_chars"

    @pytest.mark.unit
    @pytest.mark.parametrize("name", ["", None])
    def test_rejects_empty(self, tmp_path: Path, name):
        with pytest.raises(InputValidationError) as exc_info:
            validate_project_name(name, tmp_path)
        assert exc_info.value.kind == "empty"

    @pytest.mark.unit
    def test_rejects_existing_directory(self, tmp_path: Path):
        (tmp_path / "taken").mkdir()
        with pytest.raises(InputValidationError) as exc_info:
            validate_project_name("taken", tmp_path)
        assert exc_info.value.kind == "already_exists"

    @pytest.mark.unit
    def test_missing_projects_dir_is_fine(self, tmp_path: Path):
        assert validate_project_name("fresh", tmp_path / "not-yet") == "fresh"


class TestValidatePort:
    @pytest.mark.unit
    @pytest.mark.parametrize("value, expected", [("1024", 1024), ("65535", 65535), (" 5000 ", 5000), (8080, 8080)])
    def test_accepts_range(self, value, expected: int):
        assert validate_port(value) == expected

    @pytest.mark.unit
    @pytest.mark.parametrize("value", ["1023", "65536", "0", 80])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(InputValidationError) as exc_info:
            validate_port(value)
        assert exc_info.value.kind == "out_of_range"

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "value", ["abc", "", "50.5", "-5000", None, True, "²", "5000²", "\u0665\u0660\u0660\u0660", "\uff15\uff10\uff10\uff10"]
    )
    def test_rejects_non_numeric(self, value):
        with pytest.raises(InputValidationError) as exc_info:
            validate_port(value)
        assert exc_info.value.kind == "not_numeric"


class TestCollectValue:
    @pytest.mark.unit
    def test_supplied_value_skips_prompt(self, out: Console):
        with patch("flaskvite.validators.Prompt.ask") as ask:
            assert collect_value(validate_port, supplied="5001", prompt="Port", out=out) == 5001
        ask.assert_not_called()

    @pytest.mark.unit
    def test_supplied_value_is_not_retried(self, out: Console):
        with patch("flaskvite.validators.Prompt.ask") as ask:
            with pytest.raises(InputValidationError):
                collect_value(validate_port, supplied="80", prompt="Port", out=out)
        ask.assert_not_called()

    @pytest.mark.unit
    def test_retries_until_valid(self, out: Console):
        with patch("flaskvite.validators.Prompt.ask", side_effect=["abc", "6000"]) as ask:
            port = collect_value(validate_port, supplied=None, prompt="Port", out=out)
        assert port == 6000
        assert ask.call_count == 2
        assert "Attempt 1 of 3" in out.file.getvalue()

    @pytest.mark.unit
    def test_gives_up_after_max_attempts(self, out: Console):
        with patch("flaskvite.validators.Prompt.ask", side_effect=["a", "b", "c", "5000"]) as ask:
            with pytest.raises(InputValidationError):
                collect_value(validate_port, supplied=None, prompt="Port", max_attempts=3, out=out)
        assert ask.call_count == 3
        assert "Maximum attempts reached" in out.file.getvalue()

    @pytest.mark.unit
    def test_default_is_passed_to_prompt(self, out: Console):
        with patch("flaskvite.validators.Prompt.ask", return_value="5000") as ask:
            collect_value(validate_port, supplied=None, prompt="Port", default="5000", out=out)
        assert ask.call_args.kwargs["default"] == "5000"
