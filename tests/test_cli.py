"""CLI tests for the process and show subcommands."""

import json

import pytest
from click.testing import CliRunner

from beamgroup.cli import main
from beamgroup.measure import MeasureStack
from beamgroup.persistence import save_sheet

INTERLINE = 20.0


@pytest.fixture(autouse=True)
def _keep_root_logger(monkeypatch) -> None:
    monkeypatch.setattr("beamgroup.cli.configure_logging", lambda *args, **kwargs: None)


@pytest.fixture
def sheet_file(tmp_path, split_measure):
    path = tmp_path / "sheet.json"
    save_sheet(path, [MeasureStack(id=1, measures=[split_measure["measure"]])], INTERLINE)
    return path


def test_process_writes_repaired_groups(sheet_file, split_measure) -> None:
    b1, b2 = split_measure["beams"]

    result = CliRunner().invoke(main, ["process", str(sheet_file)])

    assert result.exit_code == 0, result.output
    assert "[1/3] Loading sheet document..." in result.output
    assert "Stack 1 Measure#1: 2 group(s)" in result.output
    assert "Done!  1 split(s) performed." in result.output

    output = sheet_file.with_suffix(".groups.json")
    data = json.loads(output.read_text(encoding="utf-8"))
    groups = data["stacks"][0]["measures"][0]["groups"]
    assert [g["beams"] for g in groups] == [[b1.id], [b2.id]]


def test_process_honours_output_and_limits(tmp_path, sheet_file) -> None:
    output = tmp_path / "out.json"

    result = CliRunner().invoke(
        main, ["process", str(sheet_file), "-o", str(output), "--max-split-loops", "0"]
    )

    assert result.exit_code == 0, result.output
    assert "Done!  0 split(s) performed." in result.output
    groups = json.loads(output.read_text(encoding="utf-8"))["stacks"][0]["measures"][0]["groups"]
    assert len(groups) == 1


def test_process_rejects_invalid_env_settings(sheet_file, monkeypatch) -> None:
    monkeypatch.setenv("BEAMGROUP_MAX_SPLIT_LOOPS", "-1")

    result = CliRunner().invoke(main, ["process", str(sheet_file)])

    assert result.exit_code == 1
    assert "Invalid settings" in result.output


def test_process_rejects_non_positive_dy(sheet_file) -> None:
    result = CliRunner().invoke(main, ["process", str(sheet_file), "--max-chord-dy", "0"])

    assert result.exit_code == 2


def test_process_reports_invalid_document(tmp_path) -> None:
    path = tmp_path / "broken.json"
    path.write_text('{"stacks": []}', encoding="utf-8")

    result = CliRunner().invoke(main, ["process", str(path)])

    assert result.exit_code == 1
    assert "Could not read sheet document" in result.output


def test_show_lists_persisted_groups(tmp_path, sheet_file, split_measure) -> None:
    b1, b2 = split_measure["beams"]
    output = tmp_path / "grouped.json"
    CliRunner().invoke(main, ["process", str(sheet_file), "-o", str(output)])

    result = CliRunner().invoke(main, ["show", str(output)])

    assert result.exit_code == 0, result.output
    assert "Stack 1 Measure#1" in result.output
    assert f"beams [{b1.id}]" in result.output
    assert f"beams [{b2.id}]" in result.output
    assert "multi-staff no" in result.output
    assert "duration -" in result.output
