from click.testing import CliRunner

from kontent_restore import __version__
from kontent_restore.cli.main import cli


def test_version():
    result = CliRunner().invoke(cli, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_import_help_lists_options():
    result = CliRunner().invoke(cli, ["import", "--help"])

    assert result.exit_code == 0
    for option in ("--source", "--config", "--publish", "--fix-languages", "--workflow-step-id"):
        assert option in result.output


def test_missing_configuration_exits_with_configuration_code(tmp_path, monkeypatch):
    for name in (
        "KONTENT_RESTORE_CONFIG",
        "KONTENT_RESTORE_MANAGEMENT__PROJECT_ID",
        "KONTENT_RESTORE_MANAGEMENT__API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)

    result = CliRunner().invoke(cli, ["import", "--source", str(tmp_path)])

    assert result.exit_code == 2
    assert "Configuration Error" in result.output


def test_unreadable_snapshot_exits_with_restore_code(tmp_path):
    config = tmp_path / "restore.yaml"
    config.write_text("management:\n  project_id: project-1\n  api_key: secret\n")
    snapshot = tmp_path / "snapshot"
    snapshot.mkdir()
    (snapshot / "languages.json").write_text("{broken", encoding="utf-8")

    result = CliRunner().invoke(
        cli, ["import", "--config", str(config), "--source", str(snapshot)]
    )

    assert result.exit_code == 5
    assert "Restore Error" in result.output
