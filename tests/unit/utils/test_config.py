from demo_service.utils.config import Settings


def test_settings_defaults_local_env_and_version(monkeypatch):
    # Clear env to test defaults
    for var in ("APP_ENV", "APP_VERSION", "APP_NAME", "CREATE_SCHEMA_ON_STARTUP"):
        monkeypatch.delenv(var, raising=False)

    # Create a fresh instance (bypass cache)
    s = Settings()
    assert s.app_env == "local"
    assert s.app_version == "1.0.0"
    assert s.app_name == "demo-service"
    assert s.create_schema_on_startup is True


def test_settings_respects_env_vars(monkeypatch):
    monkeypatch.setenv("APP_ENV", "dev")
    monkeypatch.setenv("APP_VERSION", "9.9.9")
    monkeypatch.setenv("APP_NAME", "renamed")
    monkeypatch.setenv("CREATE_SCHEMA_ON_STARTUP", "false")

    s = Settings()
    assert s.app_env == "dev"
    assert s.app_version == "9.9.9"
    assert s.app_name == "renamed"
    assert s.create_schema_on_startup is False
