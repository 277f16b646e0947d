from pathlib import Path

from roikit.config import load_settings

KEYS = ["ROIKIT_STORE", "ROIKIT_DATA_PATH", "ROIKIT_REST_URL", "ROIKIT_REST_KEY", "ROIKIT_SAVE_DEBOUNCE_MS", "ROIKIT_LOG_LEVEL"]


def _clear(monkeypatch):
    # setenv first so anything load_dotenv writes is removed again on teardown
    for key in KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)


def test_defaults(tmp_path, monkeypatch):
    _clear(monkeypatch)
    settings = load_settings(tmp_path / "missing.env")
    assert settings.store == "json"
    assert settings.data_path.name == "store.json"
    assert settings.save_debounce_ms == 250
    assert settings.save_debounce_sec == 0.25
    assert settings.log_level == "INFO"


def test_env_file_and_precedence(tmp_path, monkeypatch):
    _clear(monkeypatch)
    env = tmp_path / ".env"
    env.write_text(
        "ROIKIT_STORE=REST\nROIKIT_REST_URL=https://db.example.test\nROIKIT_REST_KEY=from-file\n"
        "ROIKIT_SAVE_DEBOUNCE_MS=oops\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("ROIKIT_REST_KEY", "from-process")
    monkeypatch.setenv("ROIKIT_DATA_PATH", str(tmp_path / "x.json"))

    settings = load_settings(env)
    assert settings.store == "rest"
    assert settings.rest_url == "https://db.example.test"
    assert settings.rest_key == "from-process"
    assert settings.data_path == Path(tmp_path / "x.json")
    assert settings.save_debounce_ms == 250
