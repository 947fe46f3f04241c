import logging
from pathlib import Path

import pytest

from governor_indexer.config import GovernorIndexerConfig
from governor_indexer.config import HttpConfig
from governor_indexer.config import PostgresDatabaseConfig
from governor_indexer.config import SqliteDatabaseConfig
from governor_indexer.exceptions import ConfigurationError
from governor_indexer.yaml import load_config_files
from governor_indexer.yaml import substitute_env_variables
from tests import TEST_CONFIGS


def test_load() -> None:
    config = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'])

    assert config.spec_version == '1.0'
    assert config.governor.address == '0x91a8e4a070b4ba4bf2e2a51cb42bdedf8ffb9b5a'
    assert config.datasource.url == 'https://public-node.testnet.rsk.co'
    assert config.indexer.name == 'governor'
    assert config.indexer.first_level == 4500000
    assert config.indexer.last_level is None
    assert isinstance(config.database, SqliteDatabaseConfig)
    assert config.database.connection_string == 'sqlite://:memory:'
    assert config.prometheus is None
    assert config.environment == {'NODE_URL': 'https://public-node.testnet.rsk.co'}


def test_load_merged() -> None:
    config = GovernorIndexerConfig.load(
        [
            TEST_CONFIGS / 'governor.yaml',
            TEST_CONFIGS / 'governor.sqlite.yaml',
        ]
    )

    assert isinstance(config.database, SqliteDatabaseConfig)
    assert config.prometheus is not None
    assert config.prometheus.port == 8000
    assert set(config.environment) == {'NODE_URL', 'SQLITE_PATH'}


def test_env_substitution(monkeypatch: pytest.MonkeyPatch) -> None:
    # Arrange
    monkeypatch.setenv('NODE_URL', 'https://node.example.com/')

    # Act
    safe = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'], unsafe=False)
    unsafe = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'], unsafe=True)

    # Assert
    assert safe.datasource.url == 'https://public-node.testnet.rsk.co'
    assert unsafe.datasource.url == 'https://node.example.com'


def test_env_substitution_missing_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv('GOVERNOR_TEST_MISSING', raising=False)

    with pytest.raises(ConfigurationError):
        substitute_env_variables('url: ${GOVERNOR_TEST_MISSING}', unsafe=True)

    config_yaml, environment = substitute_env_variables('url: ${GOVERNOR_TEST_MISSING:-}', unsafe=True)
    assert config_yaml == 'url: '
    assert environment == {'GOVERNOR_TEST_MISSING': ''}


def test_validation_error() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.invalid.yaml'])

    assert 'unknown_field' in exc_info.value.msg


def test_missing_config() -> None:
    with pytest.raises(ConfigurationError):
        load_config_files([Path('/nonexistent/governor.yaml')])


def test_invalid_levels(tmp_path: Path) -> None:
    # Arrange
    config_path = tmp_path / 'governor.yaml'
    config_path.write_text(
        (TEST_CONFIGS / 'governor.yaml').read_text().replace('first_level: 4500000', 'first_level: 100\n  last_level: 10')
    )

    # Act, Assert
    with pytest.raises(ConfigurationError):
        GovernorIndexerConfig.load([config_path])


def test_http_config() -> None:
    config = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'])

    assert config.datasource.http.batch_size == 50
    assert config.datasource.http.polling_interval == 5
    assert config.datasource.http.retry_count == HttpConfig().retry_count


def test_log_levels(tmp_path: Path) -> None:
    config = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'])
    assert config.log_levels() == {'governor_indexer': logging.WARNING}

    config_path = tmp_path / 'governor.yaml'
    config_path.write_text(
        (TEST_CONFIGS / 'governor.yaml').read_text().replace('logging: WARNING', 'logging:\n  web3: 10\n  tortoise: LOUD')
    )
    config = GovernorIndexerConfig.load([config_path])
    with pytest.raises(ConfigurationError):
        config.log_levels()


def test_postgres_connection_string() -> None:
    config = PostgresDatabaseConfig(
        kind='postgres',
        host='db',
        password='p@ss',
        schema_name='governor',
    )

    assert config.connection_string == 'postgres://postgres:p%40ss@db:5432/postgres?maxsize=1&schema=governor'


def test_dump() -> None:
    config = GovernorIndexerConfig.load([TEST_CONFIGS / 'governor.yaml'])

    dumped = config.dump()

    assert 'spec_version:' in dumped
    assert 'kind: evm.node' in dumped
    assert 'sentry' not in dumped
