import pytest
from receptionist.config import REQUIRED_VARS, load_settings, validate_config


@pytest.fixture
def required_env(monkeypatch):
    for var in REQUIRED_VARS:
        monkeypatch.setenv(var, f"test-{var.lower()}")


def test_missing_required_var_exits(monkeypatch, required_env, capsys):
    monkeypatch.delenv("AIRTABLE_BASE_ID")
    with pytest.raises(SystemExit) as exc:
        validate_config()
    assert exc.value.code == 1
    assert "AIRTABLE_BASE_ID" in capsys.readouterr().err


def test_all_required_present_passes(required_env):
    validate_config()


def test_settings_defaults(monkeypatch, required_env):
    for var in (
        "COMPLETION_TIMEOUT_S", "MAX_CALLER_TURNS", "NO_PROGRESS_TURNS",
        "PUBLIC_BASE_URL", "PORT", "SESSION_MAX_AGE_S",
    ):
        monkeypatch.delenv(var, raising=False)
    settings = load_settings()
    assert settings.groq_api_key == "test-groq_api_key"
    assert settings.completion_timeout_s == 8.0
    assert settings.max_caller_turns == 6
    assert settings.no_progress_turns == 4
    assert settings.session_max_age_s == 3600.0


def test_settings_overrides(monkeypatch, required_env):
    monkeypatch.setenv("MAX_CALLER_TURNS", "4")
    monkeypatch.setenv("COMPLETION_TIMEOUT_S", "2.5")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://maya.example.com/")
    settings = load_settings()
    assert settings.max_caller_turns == 4
    assert settings.completion_timeout_s == 2.5
    assert settings.public_base_url == "https://maya.example.com"


def test_bad_number_falls_back_to_default(monkeypatch, required_env):
    monkeypatch.setenv("NO_PROGRESS_TURNS", "four")
    assert load_settings().no_progress_turns == 4
