import pytest

from ethkit import config
from ethkit.config import Settings, load_settings
from ethkit.exceptions import ConfigurationError

ENV_NAMES = (config.ENV_RPC_URL, config.ENV_CHAIN_ID, config.ENV_PRIVATE_KEY, config.ENV_GAS_LIMIT)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    # setenv first so monkeypatch restores whatever load_dotenv writes
    for name in ENV_NAMES:
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    assert load_settings() == Settings()
    assert Settings().gas_limit == 8000000


def test_environment(monkeypatch):
    monkeypatch.setenv(config.ENV_RPC_URL, 'http://node:8545')
    monkeypatch.setenv(config.ENV_CHAIN_ID, '0x539')
    monkeypatch.setenv(config.ENV_PRIVATE_KEY, '46' * 32)
    monkeypatch.setenv(config.ENV_GAS_LIMIT, '21000')
    assert load_settings() == Settings(
        rpc_url='http://node:8545',
        chain_id=1337,
        private_key='0x' + '46' * 32,
        gas_limit=21000,
    )


def test_dotenv_file(tmp_path):
    env_file = tmp_path / 'node.env'
    env_file.write_text('ETHKIT_RPC_URL=http://from-file:8545\nETHKIT_CHAIN_ID=5\n')
    settings = load_settings(env_file)
    assert settings.rpc_url == 'http://from-file:8545'
    assert settings.chain_id == 5


def test_dotenv_in_working_directory(tmp_path):
    (tmp_path / '.env').write_text('ETHKIT_CHAIN_ID=11155111\n')
    assert load_settings().chain_id == 11155111


def test_environment_wins_unless_override(tmp_path, monkeypatch):
    env_file = tmp_path / 'node.env'
    env_file.write_text('ETHKIT_CHAIN_ID=5\n')
    monkeypatch.setenv(config.ENV_CHAIN_ID, '1')
    assert load_settings(env_file).chain_id == 1
    assert load_settings(env_file, override=True).chain_id == 5


def test_missing_file_is_ignored(tmp_path):
    assert load_settings(tmp_path / 'absent.env') == Settings()


@pytest.mark.parametrize('name, value', [
    (config.ENV_CHAIN_ID, 'mainnet'),
    (config.ENV_GAS_LIMIT, '1e6'),
    (config.ENV_GAS_LIMIT, '0'),
])
def test_invalid_numbers(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigurationError):
        load_settings()
