import pytest

from mpesapy.domain.models.resilience import AdmissionConfig, RetryConfig
from mpesapy.infrastructure.config import settings


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "MPESAPY_MAX_RETRIES: 7\n"
        "logging:\n"
        "  level: DEBUG\n"
        "MPESA_CONSUMER_KEY: from-yaml\n"
    )
    return path


def test_defaults_when_nothing_configured():
    assert settings.get_retry_config() == RetryConfig()
    assert settings.get_admission_config() == AdmissionConfig()
    assert settings.is_sandbox() is True
    assert settings.get_http_timeout() == 30.0


def test_yaml_values_and_nested_keys(yaml_config):
    settings.load_configuration(config_file=yaml_config, env_file=yaml_config.parent / "none.env")
    assert settings.get_config("MPESAPY_MAX_RETRIES") == 7
    assert settings.get_config("logging.level") == "DEBUG"
    assert settings.get_retry_config().max_retries == 7


def test_environment_overrides_yaml(yaml_config, monkeypatch):
    monkeypatch.setenv("MPESAPY_MAX_RETRIES", "2")
    monkeypatch.setenv("MPESA_CONSUMER_KEY", "from-env")
    settings.load_configuration(config_file=yaml_config, env_file=yaml_config.parent / "none.env")
    assert settings.get_config("MPESAPY_MAX_RETRIES") == 2
    assert settings.get_credentials().consumer_key == "from-env"


def test_sdk_env_file_wins_over_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("MPESA_CONSUMER_KEY=generic\nMPESA_CONSUMER_SECRET=generic-secret\n")
    (tmp_path / ".env.mpesapy").write_text("MPESA_CONSUMER_KEY=sdk\n")
    monkeypatch.chdir(tmp_path)
    # load_dotenv writes into os.environ; register the keys so they are undone.
    monkeypatch.setenv("MPESA_CONSUMER_KEY", "placeholder")
    monkeypatch.setenv("MPESA_CONSUMER_SECRET", "placeholder")
    monkeypatch.delenv("MPESA_CONSUMER_KEY")
    monkeypatch.delenv("MPESA_CONSUMER_SECRET")

    settings.load_configuration(config_file=tmp_path / "missing.yaml")

    credentials = settings.get_credentials()
    assert credentials.consumer_key == "sdk"
    assert credentials.consumer_secret == "generic-secret"


def test_load_is_idempotent(yaml_config, tmp_path):
    settings.load_configuration(config_file=yaml_config, env_file=tmp_path / "none.env")
    other = tmp_path / "other.yaml"
    other.write_text("MPESAPY_MAX_RETRIES: 1\n")
    settings.load_configuration(config_file=other)
    assert settings.get_config("MPESAPY_MAX_RETRIES") == 7

    settings.reset_configuration()
    settings.load_configuration(config_file=other, env_file=tmp_path / "none.env")
    assert settings.get_config("MPESAPY_MAX_RETRIES") == 1


def test_invalid_yaml_is_logged_not_raised(tmp_path):
    bad = tmp_path / "bad.yaml"
    bad.write_text("key: [unclosed\n")
    settings.load_configuration(config_file=bad, env_file=tmp_path / "none.env")
    assert settings.get_config("key", "fallback") == "fallback"


def test_test_config_has_highest_priority(monkeypatch):
    monkeypatch.setenv("MPESAPY_TIME_WINDOW_MS", "1000")
    settings.set_config_for_testing({"MPESAPY_TIME_WINDOW_MS": 5000})
    assert settings.get_admission_config().time_window_ms == 5000
    settings.clear_test_config()
    assert settings.get_admission_config().time_window_ms == 1000


@pytest.mark.parametrize("raw, expected", [
    ("true", True),
    ("False", False),
    ("12", 12),
    ("1.5", 1.5),
    ("abc", "abc"),
])
def test_environment_value_coercion(monkeypatch, raw, expected):
    monkeypatch.setenv("MPESAPY_SOME_VALUE", raw)
    assert settings.get_config("mpesapy.some_value") == expected


def test_get_str_keeps_leading_zeros(monkeypatch):
    monkeypatch.setenv("MPESA_PHONE_NUMBER", "0700404709")
    assert settings.get_str("MPESA_PHONE_NUMBER") == "0700404709"


@pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("false", False), ("0", False)])
def test_sandbox_flag(monkeypatch, raw, expected):
    monkeypatch.setenv("MPESA_SANDBOX", raw)
    assert settings.is_sandbox() is expected


def test_invalid_tuning_values_are_rejected(monkeypatch):
    monkeypatch.setenv("MPESAPY_BACKOFF_FACTOR", "0.5")
    with pytest.raises(ValueError, match="backoff_factor"):
        settings.get_retry_config()
