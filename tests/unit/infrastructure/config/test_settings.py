import pytest

from ledgerscan.domain.models.errors import ConfigurationError
from ledgerscan.infrastructure.config import settings


@pytest.fixture
def yaml_config(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "scan:\n"
        "  owner_batch_size: 50\n"
        "  retry_delay_s: 0.5\n"
        "ledger:\n"
        "  rpc_url: https://node.example.test\n"
        "logging:\n"
        "  level: DEBUG\n"
    )
    return path


def test_defaults_without_any_source():
    settings.load_configuration()
    config = settings.get_scan_config()

    assert config.concurrent_requests == 25
    assert config.owner_batch_size == 150
    assert config.balance_batch_size == 75
    assert config.retry_attempts == 3
    assert config.retry_delay_s == 1.0
    assert config.first_item_id == 1
    assert config.performance_logging is True
    assert settings.get_rpc_url() == settings.DEFAULT_RPC_URL
    assert settings.get_contract_address() == settings.DEFAULT_CONTRACT_ADDRESS
    assert settings.get_block_tag() == "latest"
    assert settings.get_rpc_timeout() == 30.0


def test_yaml_values_are_flattened(yaml_config):
    settings.load_configuration(config_file=yaml_config)

    assert settings.get_config("scan.owner_batch_size") == 50
    assert settings.get_config("logging.level") == "DEBUG"
    assert settings.get_rpc_url() == "https://node.example.test"
    assert settings.get_scan_config().retry_delay_s == 0.5


def test_environment_beats_yaml(yaml_config, monkeypatch):
    monkeypatch.setenv("LEDGERSCAN_SCAN_OWNER_BATCH_SIZE", "10")
    monkeypatch.setenv("LEDGERSCAN_SCAN_PERFORMANCE_LOGGING", "false")
    settings.load_configuration(config_file=yaml_config)

    config = settings.get_scan_config()

    assert config.owner_batch_size == 10
    assert config.performance_logging is False


def test_dotenv_does_not_override_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("LEDGERSCAN_SCAN_RETRY_ATTEMPTS=7\nLEDGERSCAN_SCAN_CONCURRENT_REQUESTS=9\n")
    monkeypatch.setenv("LEDGERSCAN_SCAN_RETRY_ATTEMPTS", "2")
    # load_dotenv writes straight to os.environ; register the key so it is undone
    monkeypatch.setenv("LEDGERSCAN_SCAN_CONCURRENT_REQUESTS", "")
    monkeypatch.delenv("LEDGERSCAN_SCAN_CONCURRENT_REQUESTS")

    settings.load_configuration(env_file=env_file)
    config = settings.get_scan_config()

    assert config.retry_attempts == 2
    assert config.concurrent_requests == 9


def test_overrides_win_and_none_is_ignored():
    settings.set_config_for_testing({"scan.retry_attempts": 5})

    config = settings.get_scan_config(retry_attempts=None, owner_batch_size=3)

    assert config.retry_attempts == 5
    assert config.owner_batch_size == 3


@pytest.mark.parametrize("key, value", [
    ("scan.owner_batch_size", 0),
    ("scan.concurrent_requests", -1),
    ("scan.retry_attempts", "many"),
    ("scan.retry_delay_s", -0.5),
])
def test_invalid_values_raise_configuration_error(key, value):
    settings.set_config_for_testing({key: value})

    with pytest.raises(ConfigurationError):
        settings.get_scan_config()


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("scan: [unclosed\n")

    with pytest.raises(ConfigurationError):
        settings.load_configuration(config_file=path)


def test_empty_rpc_url_rejected():
    settings.set_config_for_testing({"ledger.rpc_url": ""})

    with pytest.raises(ConfigurationError):
        settings.get_rpc_url()


def test_env_var_name():
    assert settings.env_var_name("ledger.rpc_url") == "LEDGERSCAN_LEDGER_RPC_URL"
