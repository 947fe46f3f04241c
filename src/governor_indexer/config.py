"""Structure of `governor.yaml`.

Files are read and merged in `governor_indexer.yaml`; here the result is validated into pydantic dataclasses.
Unknown fields are rejected everywhere.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated
from typing import Any
from typing import Literal
from urllib.parse import quote_plus

from pydantic import BeforeValidator
from pydantic import ConfigDict
from pydantic import Field
from pydantic import TypeAdapter
from pydantic import ValidationError
from pydantic.dataclasses import dataclass
from pydantic_core import to_jsonable_python

from governor_indexer import yaml
from governor_indexer.exceptions import ConfigurationError

IN_MEMORY = ':memory:'

_logger = logging.getLogger(__name__)


def _http_url(value: str) -> str:
    if not value.startswith(('http://', 'https://')):
        raise ConfigurationError(f'`{value}` is not an HTTP(S) URL')
    return value.rstrip('/')


def _evm_address(value: str | int) -> str:
    # NOTE: YAML parses unquoted `0x...` as int
    if isinstance(value, int):
        value = f'0x{value:040x}'
    if len(value) != 42 or not value.startswith('0x'):
        raise ConfigurationError(f'`{value}` is not an EVM address')
    return value.lower()


HttpUrl = Annotated[str, BeforeValidator(_http_url)]
EvmAddress = Annotated[str, BeforeValidator(_evm_address)]

_strict = ConfigDict(extra='forbid')


@dataclass(config=_strict, kw_only=True)
class SqliteDatabaseConfig:
    """SQLite database

    :param kind: always 'sqlite'
    :param path: Database file; in-memory database by default
    """

    kind: Literal['sqlite']
    path: str = IN_MEMORY

    @property
    def connection_string(self) -> str:
        if self.path == IN_MEMORY:
            return f'sqlite://{IN_MEMORY}'
        path = Path(self.path).resolve()
        path.parent.mkdir(parents=True, exist_ok=True)
        return f'sqlite:///{path}'

    @property
    def connection_timeout(self) -> int:
        # NOTE: Local file; no point in waiting
        return 1


@dataclass(config=_strict, kw_only=True)
class PostgresDatabaseConfig:
    """PostgreSQL database

    :param kind: always 'postgres'
    :param host: Host
    :param port: Port
    :param user: User
    :param password: Password
    :param database: Database name
    :param schema_name: Schema to create tables in
    :param connection_timeout: Seconds to wait for the database to come up
    """

    kind: Literal['postgres']
    host: str
    port: int = 5432
    user: str = 'postgres'
    password: str = Field(default='', repr=False)
    database: str = 'postgres'
    schema_name: str = 'public'
    connection_timeout: int = 60

    @property
    def connection_string(self) -> str:
        # NOTE: Single connection; levels are written strictly one after another
        url = f'postgres://{self.user}:{quote_plus(self.password)}@{self.host}:{self.port}/{self.database}?maxsize=1'
        if self.schema_name != 'public':
            url += f'&schema={self.schema_name}'
        return url


@dataclass(config=_strict, kw_only=True)
class HttpConfig:
    """JSON-RPC client options

    :param retry_count: Retries of a failed request before giving up
    :param retry_sleep: Seconds to sleep before the first retry
    :param retry_multiplier: Sleep time multiplier for every next retry
    :param ratelimit_rate: Requests allowed per `ratelimit_period`; no limit if 0
    :param ratelimit_period: Rate limit period in seconds
    :param ratelimit_sleep: Seconds to sleep after HTTP 429 if the node sent no `Retry-After`
    :param connection_limit: Simultaneous connections
    :param connection_timeout: Connection timeout in seconds
    :param request_timeout: Request timeout in seconds
    :param batch_size: Blocks per `eth_getLogs` request
    :param polling_interval: Seconds between head polls once synced
    """

    retry_count: int = 10
    retry_sleep: float = 1.0
    retry_multiplier: float = 2.0
    ratelimit_rate: int = 0
    ratelimit_period: int = 0
    ratelimit_sleep: float = 1.0
    connection_limit: int = 100
    connection_timeout: int = 60
    request_timeout: int = 60
    batch_size: int = 100
    polling_interval: float = 1.0


@dataclass(config=_strict, kw_only=True)
class EvmNodeDatasourceConfig:
    """EVM node

    :param kind: always 'evm.node'
    :param url: JSON-RPC endpoint
    :param http: JSON-RPC client options
    """

    kind: Literal['evm.node']
    url: HttpUrl
    http: HttpConfig = Field(default_factory=HttpConfig)

    @property
    def name(self) -> str:
        return self.kind


@dataclass(config=_strict, kw_only=True)
class GovernorContractConfig:
    """Governor contract

    :param address: Contract address; logs of other contracts are ignored
    """

    address: EvmAddress


@dataclass(config=_strict, kw_only=True)
class IndexerConfig:
    """Indexing range

    :param name: Key of the stored head; change to index from scratch into the same database
    :param first_level: Block to start from when nothing is indexed yet
    :param last_level: Block to stop after; poll forever if not set
    """

    name: str = 'governor'
    first_level: int = 0
    last_level: int | None = None

    def __post_init__(self) -> None:
        if self.last_level is not None and self.last_level < self.first_level:
            raise ConfigurationError('`last_level` must be greater than or equal to `first_level`')


@dataclass(config=_strict, kw_only=True)
class SentryConfig:
    """Sentry error reporting

    :param dsn: Sentry DSN; reporting is off if not set
    :param environment: Environment tag; guessed from docker/ci/local if not set
    :param release: Release tag; package version if not set
    :param debug: Report warnings too
    """

    dsn: str | None = None
    environment: str | None = None
    release: str | None = None
    debug: bool = False


@dataclass(config=_strict, kw_only=True)
class PrometheusConfig:
    """Prometheus exporter

    :param host: Host to bind to
    :param port: Port to bind to
    """

    host: str
    port: int = 8000


@dataclass(config=_strict, kw_only=True)
class GovernorIndexerConfig:
    """Root of `governor.yaml`

    :param spec_version: Config format version, always `1.0`
    :param datasource: EVM node
    :param governor: Governor contract
    :param database: Database; in-memory SQLite by default
    :param indexer: Indexing range
    :param sentry: Sentry error reporting
    :param prometheus: Prometheus exporter
    :param logging: Level of `governor_indexer` loggers, or a mapping of logger names to levels
    """

    spec_version: Annotated[str, BeforeValidator(str)]
    datasource: EvmNodeDatasourceConfig
    governor: GovernorContractConfig
    database: SqliteDatabaseConfig | PostgresDatabaseConfig = Field(
        default_factory=lambda: SqliteDatabaseConfig(kind='sqlite'),
        discriminator='kind',
    )
    indexer: IndexerConfig = Field(default_factory=IndexerConfig)
    sentry: SentryConfig | None = None
    prometheus: PrometheusConfig | None = None
    logging: dict[str, str | int] | str | int = 'INFO'

    def __post_init__(self) -> None:
        self._environment: dict[str, str] = {}

    @property
    def environment(self) -> dict[str, str]:
        """Environment variables the config was rendered with"""
        return self._environment

    @classmethod
    def load(
        cls,
        paths: list[Path],
        environment: bool = True,
        unsafe: bool = False,
    ) -> GovernorIndexerConfig:
        config_json, variables = yaml.load_config_files(paths, environment, unsafe)

        try:
            config = TypeAdapter(cls).validate_python(config_json)
        except ValidationError as e:
            lines = [f'- {".".join(str(part) for part in error["loc"])}: {error["msg"]}' for error in e.errors()]
            raise ConfigurationError('Config validation failed:\n\n' + '\n'.join(lines)) from e

        config._environment = variables
        return config

    def log_levels(self) -> dict[str, int]:
        levels = self.logging if isinstance(self.logging, dict) else {'governor_indexer': self.logging}

        result: dict[str, int] = {}
        for name, level in levels.items():
            value: Any = getattr(logging, level.upper(), None) if isinstance(level, str) else level
            if not isinstance(value, int):
                raise ConfigurationError(f'Invalid logging level `{level}` for logger `{name}`')
            result[name] = value
        return result

    def dump(self) -> str:
        return yaml.dump(to_jsonable_python(self))
