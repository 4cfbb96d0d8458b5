import json

from opsdesk.core.config import Settings, get_settings, load_settings


def test_defaults_without_file(tmp_path):
    s = load_settings(tmp_path)
    assert s.api_url == "http://localhost:3001/api"
    assert s.page_size == 10
    assert s.data_dir == tmp_path
    assert s.session_path == tmp_path / "session.json"


def test_settings_file_then_env_override(tmp_path, monkeypatch):
    (tmp_path / "settings.json").write_text(
        json.dumps({"api_url": "http://file/api", "page_size": 25, "unknown": 1}), encoding="utf-8"
    )
    monkeypatch.setenv("OPSDESK_TIMEOUT", "30")
    s = load_settings(tmp_path)
    assert s.api_url == "http://file/api"
    assert s.page_size == 25
    assert s.timeout == 30.0
    monkeypatch.setenv("OPSDESK_API_URL", "https://ops.example/api")
    assert load_settings(tmp_path).api_url == "https://ops.example/api"


def test_env_beats_explicit_values(monkeypatch):
    monkeypatch.setenv("OPSDESK_PAGE_SIZE", "50")
    assert Settings(page_size=25).page_size == 50


def test_corrupt_or_invalid_file_falls_back(tmp_path):
    (tmp_path / "settings.json").write_text("{oops", encoding="utf-8")
    assert load_settings(tmp_path).page_size == 10
    (tmp_path / "settings.json").write_text(json.dumps({"page_size": 0}), encoding="utf-8")
    s = load_settings(tmp_path)
    assert s.page_size == 10
    assert s.data_dir == tmp_path


def test_explicit_dir_wins_over_env_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("OPSDESK_DATA_DIR", str(tmp_path / "elsewhere"))
    assert load_settings(tmp_path).data_dir == tmp_path


def test_env_data_dir(tmp_path, monkeypatch):
    monkeypatch.setenv("OPSDESK_DATA_DIR", str(tmp_path))
    get_settings.cache_clear()
    try:
        assert get_settings().data_dir == tmp_path
        assert isinstance(get_settings(), Settings)
    finally:
        get_settings.cache_clear()
