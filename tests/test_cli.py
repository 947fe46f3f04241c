from pathlib import Path

from click.testing import CliRunner

from governor_indexer.cli import cli
from tests import TEST_CONFIGS


def test_config_env() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ['-c', str(TEST_CONFIGS / 'governor.yaml'), 'config', 'env'])

    assert result.exit_code == 0, result.output
    assert 'NODE_URL=https://public-node.testnet.rsk.co' in result.output


def test_config_env_output(tmp_path: Path) -> None:
    runner = CliRunner()
    output = tmp_path / '.env'

    result = runner.invoke(
        cli,
        [
            '-c',
            str(TEST_CONFIGS / 'governor.yaml'),
            '-c',
            str(TEST_CONFIGS / 'governor.sqlite.yaml'),
            'config',
            'env',
            '-o',
            str(output),
        ],
    )

    assert result.exit_code == 0, result.output
    assert output.read_text().splitlines() == [
        'NODE_URL=https://public-node.testnet.rsk.co',
        'SQLITE_PATH=:memory:',
    ]


def test_config_export() -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ['-c', str(TEST_CONFIGS / 'governor.yaml'), 'config', 'export'])

    assert result.exit_code == 0, result.output
    assert '0x91a8e4a070b4ba4bf2e2a51cb42bdedf8ffb9b5a' in result.output


def test_missing_config(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(cli, ['-c', str(tmp_path / 'missing.yaml'), 'config', 'env'])

    assert result.exit_code != 0
