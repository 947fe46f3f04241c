"""JSON-RPC client of an EVM node.

All requests, including the ones web3 makes for contract calls, go through a single aiohttp session.
Failed requests are retried with exponential backoff; on HTTP 429 the client sleeps for `Retry-After` seconds instead.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from http import HTTPStatus
from typing import TYPE_CHECKING
from typing import Any
from typing import cast

import aiohttp
import orjson
from aiolimiter import AsyncLimiter
from web3 import AsyncWeb3
from web3.middleware.async_cache import async_construct_simple_cache_middleware
from web3.providers.async_base import AsyncJSONBaseProvider
from web3.utils.caching import SimpleCache

from governor_indexer import __version__
from governor_indexer.evm import EvmHeadData
from governor_indexer.exceptions import DatasourceError
from governor_indexer.exceptions import FrameworkException
from governor_indexer.prometheus import Metrics

if TYPE_CHECKING:
    from types import TracebackType

    from web3.types import RPCEndpoint
    from web3.types import RPCResponse

    from governor_indexer.config import EvmNodeDatasourceConfig
    from governor_indexer.config import HttpConfig

WEB3_CACHE_SIZE = 256

# NOTE: Transport failures worth another attempt; JSON-RPC errors are not retried
RETRYABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    asyncio.TimeoutError,
    aiohttp.ClientConnectionError,
    aiohttp.ClientPayloadError,
    aiohttp.ClientResponseError,
)

_logger = logging.getLogger(__name__)


class NodeProvider(AsyncJSONBaseProvider):
    """web3 provider sending requests through `EvmNodeDatasource`"""

    def __init__(self, datasource: EvmNodeDatasource) -> None:
        super().__init__()
        self._datasource = datasource

    async def make_request(self, method: RPCEndpoint, params: Any) -> RPCResponse:
        # NOTE: web3 handles `error` in the response itself
        return cast('RPCResponse', await self._datasource.send(method, params))

    async def is_connected(self, show_traceback: bool = False) -> bool:
        return self._datasource.is_open


async def create_web3_client(datasource: EvmNodeDatasource) -> AsyncWeb3:
    web3 = AsyncWeb3(provider=NodeProvider(datasource))  # type: ignore[arg-type]
    web3.middleware_onion.add(
        await async_construct_simple_cache_middleware(SimpleCache(WEB3_CACHE_SIZE)),
        'cache',
    )
    return web3


class EvmNodeDatasource:
    """EVM node polled over HTTP; use as an async context manager"""

    def __init__(self, config: EvmNodeDatasourceConfig) -> None:
        self._config = config
        self._session: aiohttp.ClientSession | None = None
        self._web3: AsyncWeb3 | None = None
        self._request_ids = itertools.count(1)
        self._ratelimiter: AsyncLimiter | None = None
        if self.http_config.ratelimit_rate and self.http_config.ratelimit_period:
            self._ratelimiter = AsyncLimiter(
                max_rate=self.http_config.ratelimit_rate,
                time_period=self.http_config.ratelimit_period,
            )

    @property
    def name(self) -> str:
        return self._config.name

    @property
    def url(self) -> str:
        return self._config.url

    @property
    def http_config(self) -> HttpConfig:
        return self._config.http

    @property
    def is_open(self) -> bool:
        return self._session is not None and not self._session.closed

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            raise FrameworkException('web3 client is not initialized; is datasource running?')
        return self._web3

    async def __aenter__(self) -> EvmNodeDatasource:
        self._session = aiohttp.ClientSession(
            headers={
                'User-Agent': f'governor-indexer/{__version__}',
                'Content-Type': 'application/json',
            },
            connector=aiohttp.TCPConnector(limit=self.http_config.connection_limit),
            timeout=aiohttp.ClientTimeout(
                total=self.http_config.request_timeout,
                connect=self.http_config.connection_timeout,
            ),
            raise_for_status=True,
        )
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def initialize(self) -> None:
        self._web3 = await create_web3_client(self)
        level = await self.get_head_level()
        _logger.info('%s: node head is at level %s', self.name, level)

    async def get_head_level(self) -> int:
        return int(await self.rpc('eth_blockNumber', []), 16)

    async def get_block_by_level(self, level: int) -> EvmHeadData:
        block = await self.rpc('eth_getBlockByNumber', [hex(level), False])
        if not block:
            raise DatasourceError(f'Block {level} not found', self.name)
        return EvmHeadData.from_json(block)

    async def get_logs(self, address: str | None, first_level: int, last_level: int) -> list[dict[str, Any]]:
        params: dict[str, Any] = {'fromBlock': hex(first_level), 'toBlock': hex(last_level)}
        if address:
            params['address'] = address
        return cast('list[dict[str, Any]]', await self.rpc('eth_getLogs', [params]))

    async def rpc(self, method: str, params: Any) -> Any:
        """Send a request and return its `result`; JSON-RPC errors raise `DatasourceError`"""
        response = await self.send(method, params)
        if 'error' in response:
            error = response['error']
            message = error.get('message', str(error)) if isinstance(error, dict) else str(error)
            raise DatasourceError(f'`{method}` failed: {message}', self.name)
        if 'result' not in response:
            raise DatasourceError(f'`{method}` returned neither result nor error', self.name)
        return response['result']

    async def send(self, method: str, params: Any) -> dict[str, Any]:
        """Send a request and return the whole response object.

        Transport failures are retried `retry_count` times, then raise `DatasourceError`.
        """
        Metrics.inc_rpc_request(self.name, method)
        body = orjson.dumps(
            {
                'jsonrpc': '2.0',
                'id': next(self._request_ids),
                'method': method,
                'params': params,
            }
        )

        attempts = self.http_config.retry_count + 1
        sleep = self.http_config.retry_sleep
        attempt = 1
        while True:
            try:
                response = await self._post(body)
            except RETRYABLE_EXCEPTIONS as e:
                status = e.status if isinstance(e, aiohttp.ClientResponseError) else 0
                Metrics.set_http_error(self.url, status)
                Metrics.set_http_errors_in_row(self.url, attempt)
                if attempt >= attempts:
                    raise DatasourceError(f'`{method}` failed after {attempts} attempts: {e!r}', self.name) from e

                delay = self._get_retry_after(e)
                if delay is None:
                    delay = sleep
                    sleep *= self.http_config.retry_multiplier
                _logger.warning(
                    '%s: `%s` attempt %s/%s failed (%r), retrying in %s seconds',
                    self.name,
                    method,
                    attempt,
                    attempts,
                    e,
                    delay,
                )
                await asyncio.sleep(delay)
                attempt += 1
                continue

            Metrics.set_http_errors_in_row(self.url, 0)
            return response

    def _get_retry_after(self, error: Exception) -> float | None:
        if not isinstance(error, aiohttp.ClientResponseError):
            return None
        if error.status != HTTPStatus.TOO_MANY_REQUESTS:
            return None

        header = error.headers.get('Retry-After') if error.headers else None
        try:
            return max(float(header), self.http_config.ratelimit_sleep) if header else self.http_config.ratelimit_sleep
        except ValueError:
            return self.http_config.ratelimit_sleep

    async def _post(self, body: bytes) -> dict[str, Any]:
        if self._session is None:
            raise FrameworkException('HTTP session is closed; use datasource as a context manager')
        if self._ratelimiter is not None:
            await self._ratelimiter.acquire()

        async with self._session.post(self.url, data=body) as response:
            raw = await response.read()

        try:
            data = orjson.loads(raw)
        except orjson.JSONDecodeError as e:
            raise DatasourceError(f'Node response is not JSON: {raw[:100]!r}', self.name) from e
        if not isinstance(data, dict):
            raise DatasourceError(f'Unexpected node response: {raw[:100]!r}', self.name)
        return data
