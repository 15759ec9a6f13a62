import pytest

from open_lookup import config
from open_lookup.config import DEFAULT_API_BASE, LookupSettings, load_settings

ENV_VARS = (
    "OPEN_LOOKUP_API_BASE",
    "OPEN_LOOKUP_TIMEOUT_SEC",
    "OPEN_LOOKUP_CLUSTER_SCAN_PAGES",
    "OPEN_LOOKUP_REGION",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    # set first so teardown also removes values a .env file loaded
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_defaults():
    assert load_settings(dotenv=False) == LookupSettings()
    assert LookupSettings().api_base_url == DEFAULT_API_BASE


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("OPEN_LOOKUP_API_BASE", "https://mirror.example/open/")
    monkeypatch.setenv("OPEN_LOOKUP_TIMEOUT_SEC", "5")
    monkeypatch.setenv("OPEN_LOOKUP_CLUSTER_SCAN_PAGES", "12")
    monkeypatch.setenv("OPEN_LOOKUP_REGION", "2")

    settings = load_settings(dotenv=False)

    assert settings == LookupSettings(
        api_base_url="https://mirror.example/open",
        timeout_sec=5,
        cluster_scan_pages=12,
        region=2,
    )


def test_invalid_values_name_the_variable(monkeypatch):
    monkeypatch.setenv("OPEN_LOOKUP_TIMEOUT_SEC", "soon")
    with pytest.raises(ValueError, match="OPEN_LOOKUP_TIMEOUT_SEC"):
        load_settings(dotenv=False)

    monkeypatch.setenv("OPEN_LOOKUP_TIMEOUT_SEC", "0")
    with pytest.raises(ValueError, match="OPEN_LOOKUP_TIMEOUT_SEC must be >= 1"):
        load_settings(dotenv=False)


def test_dotenv_file_is_loaded_without_overriding(monkeypatch, tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("OPEN_LOOKUP_REGION=7\nOPEN_LOOKUP_TIMEOUT_SEC=9\n", encoding="utf-8")
    monkeypatch.setattr(config, "repo_file", lambda *_parts: env_file)
    monkeypatch.setenv("OPEN_LOOKUP_TIMEOUT_SEC", "30")

    settings = load_settings()

    assert settings.region == 7
    assert settings.timeout_sec == 30
