from __future__ import annotations

from pathlib import Path

import pytest

from sdqc_web.config.ini_config import MB, IniConfig


def test_defaults_without_ini(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ANTHROPIC_API_KEY", " sk-test ")
    monkeypatch.delenv("SDQC_SECRET_KEY", raising=False)

    s = IniConfig().load_settings()

    assert s.anthropic_api_key == "sk-test"
    assert s.compress_threshold_bytes == 10 * MB
    assert s.inline_max_bytes == 5 * MB
    assert s.max_document_bytes == 32 * MB
    assert s.upload_max_bytes == 50 * MB
    assert s.blob_backend == "filesystem"
    assert s.blob_storage_dir.is_dir()
    assert s.progress_interval_seconds == 1.2
    assert s.secret_key == ""


def test_ini_values_and_env_names(tmp_path: Path, monkeypatch):
    ini = tmp_path / "app.ini"
    ini.write_text(
        "[anthropic]\n"
        "model = claude-test\n"
        "api_key_env = MY_KEY\n"
        "timeout_seconds = 30\n"
        "[limits]\n"
        "inline_max_mb = 4.5\n"
        "[blob]\n"
        "backend = HTTP\n"
        "token_env = MY_BLOB_TOKEN\n"
        "api_url = https://blob.example.com/\n"
        "[flask]\n"
        "port = 8080\n"
        "debug = yes\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("MY_KEY", "k")
    monkeypatch.setenv("MY_BLOB_TOKEN", "t")

    s = IniConfig(ini, required=True).load_settings()

    assert s.anthropic_model == "claude-test"
    assert s.anthropic_api_key == "k"
    assert s.timeout_seconds == 30.0
    assert s.inline_max_bytes == int(4.5 * MB)
    assert s.blob_backend == "http"
    assert s.blob_token == "t"
    assert s.blob_api_url == "https://blob.example.com"
    assert s.flask_port == 8080
    assert s.flask_debug is True


def test_required_ini_must_exist(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        IniConfig(tmp_path / "missing.ini", required=True)


def test_app_ini_env_points_at_file(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("APP_INI", str(tmp_path / "nope.ini"))
    with pytest.raises(FileNotFoundError):
        IniConfig.from_env_or_default()


@pytest.mark.parametrize(
    "section",
    [
        "[blob]\nbackend = s3\n",
        "[limits]\ninline_max_mb = 40\nmax_document_mb = 32\n",
        "[limits]\nmax_document_mb = 60\nupload_max_mb = 50\n",
    ],
)
def test_invalid_settings_are_rejected(tmp_path: Path, section: str):
    ini = tmp_path / "bad.ini"
    ini.write_text(section, encoding="utf-8")
    with pytest.raises(ValueError):
        IniConfig(ini, required=True).load_settings()
