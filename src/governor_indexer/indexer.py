"""Indexer runtime: database, datasource, Governor binding and the sync loop wired together"""

from __future__ import annotations

import asyncio
import logging
from asyncio import CancelledError
from collections import defaultdict
from contextlib import AsyncExitStack
from contextlib import suppress
from typing import Any

from governor_indexer.config import GovernorIndexerConfig
from governor_indexer.context import HandlerContext
from governor_indexer.database import generate_schema
from governor_indexer.database import tortoise_wrapper
from governor_indexer.node import EvmNodeDatasource
from governor_indexer.evm import EvmEventData
from governor_indexer.governor import Web3GovernorContract
from governor_indexer.index import GovernorIndex
from governor_indexer.prometheus import Metrics

_logger = logging.getLogger(__name__)


class GovernorIndexer:
    """Polls the node for new blocks and feeds them to the index in order"""

    def __init__(self, config: GovernorIndexerConfig) -> None:
        self._config = config
        self._datasource = EvmNodeDatasource(config.datasource)
        self._ctx = HandlerContext(
            governor=Web3GovernorContract(self._datasource, config.governor.address),
        )
        self._index = GovernorIndex(
            name=config.indexer.name,
            ctx=self._ctx,
            address=config.governor.address,
        )

    async def run(self) -> None:
        """Run indexing process"""
        async with AsyncExitStack() as stack:
            stack.enter_context(suppress(KeyboardInterrupt, CancelledError))
            await self._set_up_database(stack)
            await self._set_up_datasource(stack)
            await self._set_up_prometheus()

            await generate_schema()
            await self._sync()

    async def _set_up_database(self, stack: AsyncExitStack) -> None:
        _logger.info('Setting up database')
        await stack.enter_async_context(
            tortoise_wrapper(
                url=self._config.database.connection_string,
                timeout=self._config.database.connection_timeout,
            )
        )

    async def _set_up_datasource(self, stack: AsyncExitStack) -> None:
        _logger.info('Setting up datasource `%s`', self._datasource.name)
        await stack.enter_async_context(self._datasource)
        await self._datasource.initialize()

    async def _set_up_prometheus(self) -> None:
        if not self._config.prometheus:
            return

        from prometheus_client import start_http_server

        _logger.info('Setting up Prometheus')
        Metrics.enabled = True
        start_http_server(self._config.prometheus.port, self._config.prometheus.host)

    async def _sync(self) -> None:
        indexer_config = self._config.indexer
        http_config = self._datasource.http_config
        next_level = await self._index.initialize(indexer_config.first_level)

        while True:
            head_level = await self._datasource.get_head_level()
            Metrics.set_head_level(self._datasource.name, head_level)

            last_level = head_level
            if indexer_config.last_level is not None:
                last_level = min(head_level, indexer_config.last_level)

            while next_level <= last_level:
                batch_last_level = min(next_level + http_config.batch_size - 1, last_level)
                await self._process_batch(next_level, batch_last_level)
                next_level = batch_last_level + 1

            if indexer_config.last_level is not None and next_level > indexer_config.last_level:
                _logger.info('`last_level` %s reached, stopping', indexer_config.last_level)
                return

            await asyncio.sleep(http_config.polling_interval)

    async def _process_batch(self, first_level: int, last_level: int) -> None:
        _logger.info('Fetching logs of levels %s-%s', first_level, last_level)
        raw_logs = await self._datasource.get_logs(
            address=self._config.governor.address,
            first_level=first_level,
            last_level=last_level,
        )

        logs_by_level: defaultdict[int, list[dict[str, Any]]] = defaultdict(list)
        for log in raw_logs:
            logs_by_level[int(log['blockNumber'], 16)].append(log)

        for level in range(first_level, last_level + 1):
            if level not in logs_by_level:
                await self._index.process_level(level)
                continue

            # NOTE: Block timestamps are requested only for levels with events
            head = await self._datasource.get_block_by_level(level)
            events = tuple(EvmEventData.from_node_json(log, head.timestamp) for log in logs_by_level[level])
            await self._index.process_level(level, events, head)

        await self._index.commit()
