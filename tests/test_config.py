import pytest
from src.config import AppConfig, load_config
from src.kernel.events import GENESIS_MESSAGE


def test_defaults_without_env():
    cfg = load_config({})
    assert cfg == AppConfig()
    assert cfg.hash_algorithm == "sha256"
    assert cfg.genesis_message == GENESIS_MESSAGE


def test_env_overrides():
    cfg = load_config({
        "CHAINTRACE_PORT": "8080",
        "CHAINTRACE_DEBUG": "yes",
        "CHAINTRACE_HASH_ALGORITHM": "SHA3_256",
        "CHAINTRACE_LOG_LEVEL": "debug",
        "CHAINTRACE_GENESIS_MESSAGE": "origin",
    })
    assert cfg.port == 8080
    assert cfg.debug is True
    assert cfg.hash_algorithm == "sha3_256"
    assert cfg.log_level == "DEBUG"
    assert cfg.genesis_message == "origin"


@pytest.mark.parametrize(
    "env",
    [
        {"CHAINTRACE_PORT": "abc"},
        {"CHAINTRACE_PORT": "70000"},
        {"CHAINTRACE_DEBUG": "maybe"},
        {"CHAINTRACE_HASH_ALGORITHM": "md5"},
        {"CHAINTRACE_HASH_ALGORITHM": "no-such-digest"},
        {"CHAINTRACE_LOG_LEVEL": "loud"},
    ],
)
def test_invalid_values_are_rejected(env):
    with pytest.raises(ValueError):
        load_config(env)


def test_with_overrides_validates():
    cfg = AppConfig().with_overrides(port=9000)
    assert cfg.port == 9000
    with pytest.raises(ValueError):
        AppConfig().with_overrides(port=0)
