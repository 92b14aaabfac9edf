import pytest

from eventflow.config import AppConfig

ENV_KEYS = (
    "ENV",
    "STORAGE_BACKEND",
    "REDIS_URL",
    "IDENTITY_BACKEND",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "ADMIN_API_KEY",
    "SEED_SAMPLE_DATA",
    "SEND_ENTRY_PASS_EMAIL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestLoadFromEnv:
    def test_defaults(self):
        config = AppConfig.load_from_env()
        assert config.env == "dev"
        assert config.storage_backend == "memory"
        assert config.identity_backend == "memory"
        assert config.seed_sample_data is True
        assert config.send_entry_pass_email is False

    def test_unknown_env_falls_back_to_dev(self, monkeypatch):
        monkeypatch.setenv("ENV", "staging")
        assert AppConfig.load_from_env().env == "dev"

    def test_prod_requires_admin_key(self, monkeypatch):
        monkeypatch.setenv("ENV", "prod")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()
        monkeypatch.setenv("ADMIN_API_KEY", "secret")
        assert AppConfig.load_from_env().admin_api_key == "secret"

    def test_unknown_storage_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "mongo")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()

    def test_redis_needs_url(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "redis")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()
        monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
        assert AppConfig.load_from_env().redis_url == "redis://localhost:6379/0"

    def test_supabase_needs_url_and_key(self, monkeypatch):
        monkeypatch.setenv("IDENTITY_BACKEND", "supabase")
        monkeypatch.setenv("SUPABASE_URL", "https://project.supabase.co")
        with pytest.raises(RuntimeError):
            AppConfig.load_from_env()
        monkeypatch.setenv("SUPABASE_ANON_KEY", "anon")
        assert AppConfig.load_from_env().identity_backend == "supabase"

    def test_flags(self, monkeypatch):
        monkeypatch.setenv("SEED_SAMPLE_DATA", "no")
        monkeypatch.setenv("SEND_ENTRY_PASS_EMAIL", "true")
        config = AppConfig.load_from_env()
        assert config.seed_sample_data is False
        assert config.send_entry_pass_email is True
