"""Tests for the gorelease command-line interface."""

from __future__ import annotations

from unittest import mock

import pytest

from gorelease.build.models import BuildReport
from gorelease.main import build_parser, main, options_from_args
from gorelease.utils.exceptions import ConfigurationError, MissingCommandError


def test_help_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--help"])
    assert exc_info.value.code == 0
    assert "--all" in capsys.readouterr().out


def test_version_exits_zero(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["-v"])
    assert exc_info.value.code == 0
    assert capsys.readouterr().out.strip() == "v2.3.0"


def test_unknown_option_exits_one(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--frobnicate"])
    assert exc_info.value.code == 1
    assert "--frobnicate" in capsys.readouterr().err


def test_options_from_args(tmp_path):
    args = build_parser().parse_args(
        ["--all", "-b", "1.2.3", "-p", "--with-cgo", "--no-color", "--docker", "-m", "app.go", "-C", str(tmp_path)]
    )
    options = options_from_args(args)
    assert options.build_all is True
    assert options.build_version == "1.2.3"
    assert options.package is True
    assert options.with_cgo is True
    assert options.use_color is False
    assert options.docker is True
    assert options.main_file == "app.go"
    assert options.project_root == tmp_path.resolve()
    assert options.dry_run is False


def test_config_equals_form(tmp_path):
    args = build_parser().parse_args([f"--config={tmp_path / 'build.config'}"])
    assert options_from_args(args).config_path == (tmp_path / "build.config").resolve()


@mock.patch("gorelease.main.Orchestrator")
def test_success_exits_zero(mock_orchestrator, tmp_path):
    mock_orchestrator.return_value.run.return_value = BuildReport()
    assert main(["--dry-run", "-C", str(tmp_path)]) == 0


@mock.patch("gorelease.main.Orchestrator")
def test_fatal_errors_exit_one(mock_orchestrator, tmp_path):
    mock_orchestrator.return_value.run.side_effect = MissingCommandError("missing go", command="go")
    assert main(["-C", str(tmp_path)]) == 1

    mock_orchestrator.return_value.run.side_effect = ConfigurationError("bad", errors=["a", "b"])
    assert main(["-C", str(tmp_path)]) == 1
