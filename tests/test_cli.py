import pytest
from typer.testing import CliRunner

from agent_convert.cli import app

runner = CliRunner()

SKILL = """---
name: code-review
description: Review code for bugs
allowed-tools: Read, Grep
context: fork
agent: explore
---
Analyze the diff and report every issue you find, with a suggested fix.
"""


@pytest.fixture
def skill_file(tmp_path):
    path = tmp_path / ".claude" / "skills" / "code-review" / "SKILL.md"
    path.parent.mkdir(parents=True)
    path.write_text(SKILL, encoding="utf-8")
    return path


@pytest.fixture
def cursorrules(tmp_path):
    path = tmp_path / ".cursorrules"
    path.write_text("Always write tests.\n", encoding="utf-8")
    return path


def test_cli_convert_dry_run(skill_file):
    result = runner.invoke(app, ["convert", str(skill_file), "--to", "windsurf", "--dry-run"])

    assert result.exit_code == 0
    assert "DRY RUN" in result.stdout
    assert "auto_execution_mode: 1" in result.stdout
    assert "TOOL_RESTRICTION_LOST" in result.stdout
    assert "Conversion Report" in result.stdout


def test_cli_convert_writes_file(tmp_path, skill_file):
    output = tmp_path / "out"
    result = runner.invoke(
        app,
        ["convert", str(skill_file), "--to", "cursor", "--output", str(output), "--comments"],
    )

    assert result.exit_code == 0
    assert "Converted to Cursor" in result.stdout
    written = output / ".cursor" / "skills" / "code-review" / "SKILL.md"
    assert written.exists()
    assert "<!-- Converted from claude to Cursor -->" in written.read_text(encoding="utf-8")


def test_cli_convert_json(skill_file):
    result = runner.invoke(
        app, ["convert", str(skill_file), "--to", "windsurf", "--json"]
    )

    assert result.exit_code == 0
    assert '"success": true' in result.stdout
    assert '"fidelity_score": 77' in result.stdout


def test_cli_convert_missing_file(tmp_path):
    result = runner.invoke(app, ["convert", str(tmp_path / "nope.md"), "--to", "cursor"])

    assert result.exit_code == 1
    assert "Conversion failed" in result.stdout
    assert "FILE_NOT_FOUND" in result.stdout


def test_cli_convert_rejects_unknown_agent(skill_file):
    result = runner.invoke(app, ["convert", str(skill_file), "--to", "vim"])
    assert result.exit_code == 2


def test_cli_validate(skill_file):
    result = runner.invoke(
        app, ["validate", str(skill_file), "--agent", "claude", "--type", "skill"]
    )

    assert result.exit_code == 0
    assert "VALID claude skill" in result.stdout
    assert "FORK_CONTEXT" in result.stdout


def test_cli_validate_failure(tmp_path):
    path = tmp_path / "SKILL.md"
    path.write_text("---\ndescription: No name\n---\nBody text", encoding="utf-8")
    result = runner.invoke(app, ["validate", str(path), "--agent", "claude", "--type", "skill"])

    assert result.exit_code == 1
    assert "INVALID" in result.stdout
    assert "MISSING_NAME" in result.stdout


def test_cli_validate_missing_file(tmp_path):
    result = runner.invoke(
        app, ["validate", str(tmp_path / "nope.md"), "--agent", "claude", "--type", "skill"]
    )
    assert result.exit_code == 1
    assert "FILE_NOT_FOUND" in result.stdout


def test_cli_diff(tmp_path, skill_file):
    other = tmp_path / ".claude" / "skills" / "other" / "SKILL.md"
    other.parent.mkdir(parents=True)
    other.write_text(SKILL.replace("context: fork\n", ""), encoding="utf-8")

    result = runner.invoke(app, ["diff", str(skill_file), str(other)])

    assert result.exit_code == 0
    assert "Overall: SIGNIFICANT" in result.stdout
    assert "Execution Context" in result.stdout


def test_cli_matrix_markdown():
    result = runner.invoke(app, ["matrix", "--markdown"])

    assert result.exit_code == 0
    assert "| claude | 100 | 76 |" in result.stdout
    assert "| aider | 0 |" in result.stdout


def test_cli_matrix_table():
    result = runner.invoke(app, ["matrix"])
    assert result.exit_code == 0
    assert "Compatibility matrix" in result.stdout


def test_cli_detect_version(cursorrules):
    result = runner.invoke(app, ["detect-version", str(cursorrules), "--agent", "cursor"])

    assert result.exit_code == 0
    assert "Detected version: 0.34" in result.stdout


def test_cli_adapt(tmp_path, cursorrules):
    result = runner.invoke(
        app, ["adapt", str(cursorrules), "--agent", "cursor", "--from", "1.6", "--to", "1.7"]
    )

    assert result.exit_code == 0
    assert "description: Migrated from .cursorrules" in result.stdout

    output = tmp_path / "default.mdc"
    result = runner.invoke(
        app,
        [
            "adapt",
            str(cursorrules),
            "--agent",
            "cursor",
            "--from",
            "1.6",
            "--to",
            "1.7",
            "--output",
            str(output),
        ],
    )
    assert result.exit_code == 0
    assert output.read_text(encoding="utf-8").startswith("---\ndescription:")


def test_cli_adapt_strict_downgrade(tmp_path):
    path = tmp_path / "SKILL.md"
    path.write_text("---\nname: x\nagent: explore\n---\nBody", encoding="utf-8")
    result = runner.invoke(
        app,
        ["adapt", str(path), "--agent", "claude", "--from", "2.0", "--to", "1.0", "--strict"],
    )

    assert result.exit_code == 1
    assert "UNSUPPORTED_CONVERSION" in result.stdout


def test_cli_migration_guide():
    result = runner.invoke(
        app, ["migration-guide", "--agent", "cursor", "--from", "1.6", "--to", "1.7"]
    )

    assert result.exit_code == 0
    assert "# Migration Guide: 1.6 to 1.7" in result.stdout
    assert "Complexity: low" in result.stdout


def test_cli_migration_guide_unknown_version():
    result = runner.invoke(
        app, ["migration-guide", "--agent", "cursor", "--from", "1.6", "--to", "9.0"]
    )
    assert result.exit_code == 1
    assert "Unknown Cursor version" in result.stdout


def test_cli_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "agent-convert version 0.1.0" in result.stdout


def test_cli_convert_markdown_report(tmp_path, skill_file):
    report = tmp_path / "report.md"
    result = runner.invoke(
        app,
        ["convert", str(skill_file), "--to", "windsurf", "--dry-run", "--report", str(report)],
    )

    assert result.exit_code == 0
    text = report.read_text(encoding="utf-8")
    assert text.startswith("# Conversion Report: code-review")
    assert "- **Fidelity:** 77%" in text
    assert "| warning | execution | `execution.context` |" in text
