from click.testing import CliRunner

from interview_practice.cli import cli


def write_config(tmp_path):
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    (config_dir / "config.yaml").write_text(
        f"rag:\n  db_path: {tmp_path / 'kb.db'}\n  model_dir: {tmp_path / 'model'}\n",
        encoding="utf-8",
    )
    return config_dir


def test_status_on_empty_knowledge_base(tmp_path, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "test")
    config_dir = write_config(tmp_path)

    result = CliRunner().invoke(cli, ["--config", str(config_dir), "knowledge", "status"])

    assert result.exit_code == 0, result.output
    assert "Knowledge base is empty" in result.output


def test_rebuild_without_model_reports_failure(tmp_path, monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "test")
    config_dir = write_config(tmp_path)

    result = CliRunner().invoke(cli, ["--config", str(config_dir), "knowledge", "rebuild"])

    assert result.exit_code == 1
    assert "Index rebuild failed" in result.output
