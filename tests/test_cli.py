"""Tests for the offline CLI commands."""

from click.testing import CliRunner

from verslag.cli import main
from verslag.state_store import load_state


def test_init_and_add_section(tmp_path):
    state_file = tmp_path / "verslag.json"
    doc = tmp_path / "data.txt"
    doc.write_text("Revenue grew.", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(main, ["--state-file", str(state_file), "init", "Q3 Report"])
    assert result.exit_code == 0

    result = runner.invoke(
        main,
        ["--state-file", str(state_file), "add-section", "Findings", "--instructions", "List them.", "--doc", str(doc)],
    )
    assert result.exit_code == 0
    result = runner.invoke(main, ["--state-file", str(state_file), "add-section", "Summary", "--overview"])
    assert result.exit_code == 0

    state = load_state(state_file)
    assert state.title == "Q3 Report"
    assert [s.name for s in state.sections] == ["Findings", "Summary"]
    assert state.sections[0].documents[0].name == "data.txt"
    assert state.sections[1].overview_mode


def test_add_section_rejects_unsupported_file(tmp_path):
    state_file = tmp_path / "verslag.json"
    bad = tmp_path / "tool.exe"
    bad.write_bytes(b"MZ")

    result = CliRunner().invoke(main, ["--state-file", str(state_file), "add-section", "X", "--doc", str(bad)])

    assert result.exit_code == 1
    assert "File type not supported" in result.output
    assert not state_file.exists()


def test_estimate_prints_breakdown(tmp_path):
    state_file = tmp_path / "verslag.json"
    runner = CliRunner()
    runner.invoke(main, ["--state-file", str(state_file), "add-section", "Findings", "--instructions", "Be brief."])

    result = runner.invoke(main, ["--state-file", str(state_file), "estimate", "--model", "gpt-4o"])

    assert result.exit_code == 0
    assert "Findings" in result.output
    assert "Estimated cost on gpt-4o" in result.output


def test_generate_without_sections_fails(tmp_path):
    result = CliRunner().invoke(main, ["--state-file", str(tmp_path / "none.json"), "generate", "--yes"])
    assert result.exit_code == 1
    assert "No sections defined" in result.output


def test_estimate_rejects_bad_settings_file(tmp_path):
    state_file = tmp_path / "verslag.json"
    settings_file = tmp_path / "settings.json"
    settings_file.write_text('{"prompts": {"intro": "Say hello."}}', encoding="utf-8")
    runner = CliRunner()
    runner.invoke(main, ["--state-file", str(state_file), "add-section", "Findings"])

    result = runner.invoke(
        main, ["--state-file", str(state_file), "estimate", "--settings-file", str(settings_file)]
    )

    assert result.exit_code == 1
    assert "Invalid settings file" in result.output
