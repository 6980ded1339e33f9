"""Tests for project configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from formulakit.project import (
    CONFIG_FILENAME,
    DEFAULT_CONFIG,
    format_value,
    init_project,
    load_project_config,
)


class TestLoadProjectConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        assert load_project_config(tmp_path) == DEFAULT_CONFIG

    def test_user_values_override(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("result_column: value\nprecision: 3\n")
        cfg = load_project_config(tmp_path)
        assert cfg["result_column"] == "value"
        assert cfg["precision"] == 3
        assert cfg["on_error"] == "raise"

    def test_nested_logging_block(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text(
            "logging:\n  enabled: false\n  tail_bytes: 1024\n"
        )
        cfg = load_project_config(tmp_path)
        assert cfg["logging_enabled"] is False
        assert cfg["logging_tail_bytes"] == 1024
        assert "logging" not in cfg

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_project_config(tmp_path) == DEFAULT_CONFIG

    def test_bare_null_on_error(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("on_error: null\n")
        assert load_project_config(tmp_path)["on_error"] == "null"

    def test_bad_on_error(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("on_error: ignore\n")
        with pytest.raises(ValueError, match="on_error"):
            load_project_config(tmp_path)

    def test_bad_precision(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("precision: -1\n")
        with pytest.raises(ValueError, match="precision"):
            load_project_config(tmp_path)

    def test_not_a_mapping(self, tmp_path: Path) -> None:
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="mapping"):
            load_project_config(tmp_path)


class TestInitProject:
    def test_writes_loadable_config(self, tmp_path: Path) -> None:
        path = init_project(tmp_path / "proj")
        assert path.name == CONFIG_FILENAME
        assert load_project_config(tmp_path / "proj") == DEFAULT_CONFIG

    def test_refuses_to_overwrite(self, tmp_path: Path) -> None:
        init_project(tmp_path)
        with pytest.raises(FileExistsError):
            init_project(tmp_path)


class TestFormatValue:
    def test_integral_values_drop_decimal(self) -> None:
        assert format_value(8.0, None) == "8"
        assert format_value(-7.0, None) == "-7"

    def test_full_precision(self) -> None:
        assert format_value(0.1 + 0.2, None) == "0.30000000000000004"

    def test_fixed_precision(self) -> None:
        assert format_value(1 / 3, 2) == "0.33"

    def test_non_finite(self) -> None:
        assert format_value(float("inf"), None) == "inf"
