# NOTE: Heavy imports are done inside commands to keep `--help` fast
import atexit
import logging
import sys
from collections.abc import Callable
from collections.abc import Coroutine
from contextlib import suppress
from dataclasses import dataclass
from functools import wraps
from pathlib import Path
from typing import TYPE_CHECKING
from typing import Any
from typing import TypeVar
from typing import cast

import click
import uvloop

from governor_indexer import __version__
from governor_indexer import env

if TYPE_CHECKING:
    from governor_indexer.config import GovernorIndexerConfig

ROOT_CONFIG = 'governor.yaml'

_logger = logging.getLogger(__name__)

CommandT = TypeVar('CommandT', bound=Callable[..., Any])


def echo(message: str, err: bool = False, **styles: Any) -> None:
    with suppress(BrokenPipeError):
        click.secho(message, err=err, **styles)


def _print_help_atexit(error: Exception) -> None:
    from governor_indexer.exceptions import Error

    message = error.help() if isinstance(error, Error) else Error.default_help()
    atexit.register(echo, message, err=True)


def _with_help(fn: CommandT) -> CommandT:
    """Print a hint on how to fix the error after the traceback"""

    @wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as e:
            _print_help_atexit(e)
            raise

    return cast(CommandT, wrapper)


def _run(coro: Coroutine[Any, Any, None]) -> None:
    with suppress(KeyboardInterrupt):
        uvloop.run(coro)


@dataclass
class CLIContext:
    config_args: list[str]
    env_file_args: list[str]

    def config_paths(self) -> list[Path]:
        from governor_indexer.exceptions import ConfigurationError

        paths = []
        for arg in self.config_args or [ROOT_CONFIG]:
            path = Path(arg)
            if path.is_dir():
                path /= ROOT_CONFIG
            if not path.is_file():
                raise ConfigurationError(f'Config file not found: {path}')
            paths.append(path)
        return paths

    def load_env_files(self) -> None:
        from dotenv import load_dotenv

        from governor_indexer.exceptions import ConfigurationError

        for arg in self.env_file_args:
            path = Path(arg)
            if not path.is_file():
                raise ConfigurationError(f'Env file not found: {path}')
            _logger.info('Applying env file `%s`', path)
            load_dotenv(path, override=True)

    def load_config(self, unsafe: bool = True) -> 'GovernorIndexerConfig':
        from governor_indexer.config import GovernorIndexerConfig

        self.load_env_files()
        return GovernorIndexerConfig.load(self.config_paths(), environment=True, unsafe=unsafe)

    def prepare(self) -> 'GovernorIndexerConfig':
        """Load config with the actual environment, then apply its logging and Sentry sections"""
        from governor_indexer.sentry import init_sentry
        from governor_indexer.sys import set_up_logging

        config = self.load_config()
        set_up_logging(config.log_levels())
        if config.sentry:
            init_sentry(config.sentry)
        return config


@click.group(
    context_settings={'max_content_width': 120},
    help='Index proposals and votes of an on-chain Governor contract.',
)
@click.version_option(__version__)
@click.option(
    '--config',
    '-c',
    type=str,
    multiple=True,
    default=[],
    metavar='PATH',
    envvar='GOVERNOR_CONFIG',
    help='Path to `governor.yaml` or a directory containing it; repeat to merge files.',
)
@click.option(
    '--env-file',
    '-e',
    type=str,
    multiple=True,
    default=[],
    metavar='PATH',
    envvar='GOVERNOR_ENV_FILE',
    help='Path to a .env file with `KEY=value` lines.',
)
@click.pass_context
def cli(ctx: click.Context, config: tuple[str, ...], env_file: tuple[str, ...]) -> None:
    from governor_indexer.sys import set_up_logging

    set_up_logging()
    ctx.obj = CLIContext(config_args=list(config), env_file_args=list(env_file))


@cli.command()
@click.pass_obj
@_with_help
def run(obj: CLIContext) -> None:
    """Run the indexer.

    Stops after `indexer.last_level` if set; otherwise polls the node until interrupted with Ctrl+C.
    """
    from governor_indexer.indexer import GovernorIndexer

    config = obj.prepare()
    _run(GovernorIndexer(config).run())


@cli.group()
def config() -> None:
    """Inspect project configuration."""


@config.command(name='export')
@click.option('--unsafe', is_flag=True, help='Use actual environment variables instead of default values.')
@click.pass_obj
@_with_help
def config_export(obj: CLIContext, unsafe: bool) -> None:
    """Print config after resolving environment variables and defaults.

    WARNING: Output may contain secrets when `--unsafe` is set.
    """
    echo(obj.load_config(unsafe=unsafe).dump())


@config.command(name='env')
@click.option('--output', '-o', type=str, default=None, help='Write to a file instead of stdout.')
@click.option('--unsafe', is_flag=True, help='Use actual environment variables instead of default values.')
@click.option('--internal', '-i', is_flag=True, help='Include `GOVERNOR_*` variables.')
@click.pass_obj
@_with_help
def config_env(obj: CLIContext, output: str | None, unsafe: bool, internal: bool) -> None:
    """Print environment variables used in config as a .env file."""
    from governor_indexer.yaml import load_config_files

    obj.load_env_files()
    _, variables = load_config_files(obj.config_paths(), environment=True, unsafe=unsafe)
    if internal:
        variables.update(env.dump())

    content = '\n'.join(f'{k}={v}' for k, v in sorted(variables.items()))
    if output:
        Path(output).write_text(content + '\n')
    else:
        echo(content)


@cli.group()
def schema() -> None:
    """Manage database schema."""


@schema.command(name='init')
@click.pass_obj
@_with_help
def schema_init(obj: CLIContext) -> None:
    """Create missing tables."""
    from governor_indexer.database import generate_schema
    from governor_indexer.database import tortoise_wrapper

    config = obj.prepare()

    async def _init() -> None:
        async with tortoise_wrapper(config.database.connection_string, config.database.connection_timeout):
            await generate_schema()

    _run(_init())
    _logger.info('Schema initialized')


@schema.command(name='wipe')
@click.option('--force', '-f', is_flag=True, help='Skip confirmation prompt.')
@click.pass_obj
@_with_help
def schema_wipe(obj: CLIContext, force: bool) -> None:
    """Delete all indexed data including the stored head.

    WARNING: This action is irreversible!
    """
    from governor_indexer.database import generate_schema
    from governor_indexer.database import tortoise_wrapper
    from governor_indexer.database import wipe_schema

    config = obj.prepare()
    url = config.database.connection_string

    if not force:
        if not sys.stdin.isatty():
            echo('Not in a TTY; pass `--force` to wipe schema', err=True)
            sys.exit(1)
        click.confirm(f'All data in `{url}` will be irreversibly lost, are you sure?', abort=True)

    async def _wipe() -> None:
        async with tortoise_wrapper(url, config.database.connection_timeout):
            await generate_schema()
            await wipe_schema()

    _run(_wipe())
    _logger.info('Schema wiped')
