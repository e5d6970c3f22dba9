from __future__ import annotations

from pathlib import Path

import pytest

from detector_pipeline import __main__ as cli
from detector_pipeline import runner
from detector_pipeline.errors import EXIT_EXECUTION, EXIT_OK, EXIT_USAGE, EXIT_VALIDATION


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    (tmp_path / "detector.cfg").write_text("KEYWORD=disc\nFRACTION=0.80\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def recorded(executor, monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(runner, "run_command", executor)
    return executor


def _make_result_dirs(root: Path, *names: str) -> None:
    for name in names:
        (root / "data" / "disc80" / name).mkdir(parents=True)


def test_classify_scores_each_matching_directory(workdir, recorded) -> None:
    _make_result_dirs(workdir, "cells8_bins9", "cells8_bins9_rerun", "cells8_bins8")

    assert cli.main(["--classify", "--cells", "8", "--bins", "9", "-d", "data"]) == EXIT_OK
    assert [call[-1] for call in recorded.calls] == [
        "data/disc80/cells8_bins9",
        "data/disc80/cells8_bins9_rerun",
    ]
    assert all(call[1:3] == ["--lib_path=", "--summary_file=summary.csv"] for call in recorded.calls)
    assert (workdir / "logs").is_dir()


def test_dry_run_prints_and_starts_nothing(workdir, recorded, capsys) -> None:
    _make_result_dirs(workdir, "cells8_bins8")

    assert cli.main(["-c", "-d", "data", "-n"]) == EXIT_OK
    out = capsys.readouterr().out
    assert recorded.calls == []
    assert "DRY RUN: Begin -> Classify images -> End" in out
    assert "score.R --lib_path= --summary_file=summary.csv data/disc80/cells8_bins8" in out
    assert not (workdir / "logs").exists()


def test_configuration_is_shown_before_anything_runs(workdir, recorded, capsys) -> None:
    cli.main(["-c", "-d", "data", "-n"])
    out = capsys.readouterr().out
    assert out.index("CONFIG FILE : detector.cfg") < out.index("DRY RUN:")
    assert "No result directories match data/disc80/cells8_bins8*" in out


def test_flag_order_does_not_change_stage_order(workdir, recorded) -> None:
    _make_result_dirs(workdir, "cells8_bins8")
    (workdir / "labels.txt").write_text("img001.jpg disc\n", encoding="utf-8")

    assert cli.main(["-c", "-d", "data", "-p", "-l", "labels.txt"]) == EXIT_OK
    assert recorded.calls[0] == ["partition_data_two_class.sh", "disc", "labels.txt", "0.80"]
    assert recorded.calls[1][0] == "score.R"


def test_config_file_option_selects_file(workdir, recorded, capsys) -> None:
    (workdir / "other.cfg").write_text("KEYWORD=jump\nFRACTION=0.805\nLIBPATH=lib/\n", encoding="utf-8")

    assert cli.main(["-cfg", "other.cfg", "-c", "-d", "data", "--dry_run"]) == EXIT_OK
    out = capsys.readouterr().out
    assert "CONFIG FILE : other.cfg" in out
    assert "DESTINATION : jump81" in out
    assert "No result directories match data/jump81/cells8_bins8*" in out


def test_cli_overrides_config_file(workdir, recorded, capsys) -> None:
    cli.main(["--keyword", "player", "--fraction", ".125", "-n"])
    out = capsys.readouterr().out
    assert "KEYWORD     : player" in out
    assert "DESTINATION : player13" in out


def test_missing_label_file_is_validation_error(workdir, recorded, capsys) -> None:
    assert cli.main(["--partition", "--dry_run"]) == EXIT_VALIDATION
    assert "--label_file FILE_NAME is required." in capsys.readouterr().out
    assert recorded.calls == []


def test_label_file_not_found(workdir, recorded, capsys) -> None:
    assert cli.main(["-p", "-l", "/no/such/path"]) == EXIT_VALIDATION
    assert "/no/such/path not found." in capsys.readouterr().out


def test_tool_failure_exit_status(workdir, make_executor, monkeypatch) -> None:
    (workdir / "labels.txt").write_text("img001.jpg disc\n", encoding="utf-8")
    monkeypatch.setattr(runner, "run_command", make_executor(lambda command: 7))

    assert cli.main(["-p", "-l", "labels.txt"]) == EXIT_EXECUTION


def test_no_stage_requested_does_nothing(workdir, recorded, capsys) -> None:
    assert cli.main(["-k", "disc"]) == EXIT_OK
    assert "nothing to do" in capsys.readouterr().out
    assert recorded.calls == []
    assert not (workdir / "logs").exists()


def test_arguments_after_double_dash_are_ignored(workdir, recorded) -> None:
    assert cli.main(["-n", "--", "--bogus", "-z"]) == EXIT_OK


def test_unknown_flag_is_usage_error(workdir, recorded, capsys) -> None:
    assert cli.main(["--bogus"]) == EXIT_USAGE
    captured = capsys.readouterr()
    assert "usage: detector" in captured.err
    assert recorded.calls == []


def test_abbreviated_long_option_is_rejected(workdir, recorded) -> None:
    assert cli.main(["--class"]) == EXIT_USAGE


def test_long_form_aliases(workdir, recorded, capsys) -> None:
    assert cli.main(["--extract_features", "--dry-run", "-d", "data"]) == EXIT_OK
    assert "DRY RUN: Begin -> Make HoGs -> End" in capsys.readouterr().out


def test_help_exits_immediately(workdir, recorded, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["-c", "-h", "-d", "data"])
    assert excinfo.value.code == 0
    out = capsys.readouterr().out
    assert "Examples:" in out
    assert "--config_file" in out
    assert "CONFIG FILE" not in out
    assert recorded.calls == []
