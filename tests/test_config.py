"""config モジュールのテスト."""

import pytest

from meo_ranker.config import load_settings
from meo_ranker.errors import ConfigurationMissing

_ENV_KEYS = [
    "SPREADSHEET_ID", "GOOGLE_CREDENTIALS_FILE", "BROWSER_EXECUTABLE_PATH", "HEADLESS",
    "SEARCH_LANGUAGE", "MAX_REVEAL_ATTEMPTS", "MAX_ENTRIES", "FALLBACK_ROW", "HOST", "PORT", "CORS_ORIGINS",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    # .env から読み込まれた値もテスト後に元へ戻るよう、一度 setenv してから消す
    for key in _ENV_KEYS:
        monkeypatch.setenv(key, "")
        monkeypatch.delenv(key)
    creds = tmp_path / "creds.json"
    creds.write_text("{}", encoding="utf-8")
    return tmp_path, creds


class TestLoadSettings:
    """load_settings のテスト."""

    def test_defaults(self, clean_env, monkeypatch):
        tmp_path, creds = clean_env
        monkeypatch.setenv("SPREADSHEET_ID", "sheet-id")
        monkeypatch.setenv("GOOGLE_CREDENTIALS_FILE", str(creds))

        settings = load_settings(tmp_path / ".env")

        assert settings.spreadsheet_id == "sheet-id"
        assert settings.credentials_file == creds
        assert settings.headless is True
        assert settings.max_reveal_attempts == 10
        assert settings.fallback_row == 2
        assert settings.browser_executable_path is None
        assert settings.cors_origins == ("*",)

    def test_overrides(self, clean_env, monkeypatch):
        tmp_path, creds = clean_env
        monkeypatch.setenv("SPREADSHEET_ID", "sheet-id")
        monkeypatch.setenv("GOOGLE_CREDENTIALS_FILE", str(creds))
        monkeypatch.setenv("HEADLESS", "false")
        monkeypatch.setenv("MAX_ENTRIES", "60")
        monkeypatch.setenv("PORT", "8080")
        monkeypatch.setenv("CORS_ORIGINS", "https://a.example.com, https://b.example.com,")

        settings = load_settings(tmp_path / ".env")

        assert settings.headless is False
        assert settings.max_entries == 60
        assert settings.port == 8080
        assert settings.cors_origins == ("https://a.example.com", "https://b.example.com")

    def test_dotenv_file(self, clean_env):
        tmp_path, creds = clean_env
        env_file = tmp_path / ".env"
        env_file.write_text(
            f"SPREADSHEET_ID=from-dotenv\nGOOGLE_CREDENTIALS_FILE={creds}\n", encoding="utf-8"
        )

        assert load_settings(env_file).spreadsheet_id == "from-dotenv"

    def test_missing_spreadsheet_id(self, clean_env, monkeypatch):
        tmp_path, creds = clean_env
        monkeypatch.setenv("GOOGLE_CREDENTIALS_FILE", str(creds))
        with pytest.raises(ConfigurationMissing):
            load_settings(tmp_path / ".env")

    def test_missing_credentials_file(self, clean_env, monkeypatch):
        tmp_path, _ = clean_env
        monkeypatch.setenv("SPREADSHEET_ID", "sheet-id")
        monkeypatch.setenv("GOOGLE_CREDENTIALS_FILE", str(tmp_path / "missing.json"))
        with pytest.raises(ConfigurationMissing):
            load_settings(tmp_path / ".env")

    def test_invalid_integer(self, clean_env, monkeypatch):
        tmp_path, creds = clean_env
        monkeypatch.setenv("SPREADSHEET_ID", "sheet-id")
        monkeypatch.setenv("GOOGLE_CREDENTIALS_FILE", str(creds))
        monkeypatch.setenv("MAX_ENTRIES", "many")
        with pytest.raises(ConfigurationMissing):
            load_settings(tmp_path / ".env")
