import asyncio
import decimal
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from tortoise import Tortoise
from tortoise.connection import connections
from tortoise.transactions import in_transaction

from governor_indexer.fields import UINT256_DIGITS

_logger = logging.getLogger(__name__)

MODELS_MODULE = 'governor_indexer.models'


def _set_decimal_precision() -> None:
    # NOTE: Tally arithmetic on uint256 must not round
    for context in (decimal.getcontext(), decimal.DefaultContext):
        if context.prec < UINT256_DIGITS:
            context.prec = UINT256_DIGITS


@asynccontextmanager
async def tortoise_wrapper(url: str, timeout: int = 60) -> AsyncIterator[None]:
    """Connect Tortoise to the database, waiting up to `timeout` seconds for it to come up"""
    _set_decimal_precision()

    try:
        for attempt in range(1, timeout + 1):
            try:
                await Tortoise.init(db_url=url, modules={'models': [MODELS_MODULE]})
                await connections.get('default').execute_query('SELECT 1')
                break
            except OSError as e:
                if attempt == timeout:
                    raise
                _logger.warning('Database is not available (%s), attempt %s/%s', e, attempt, timeout)
                await asyncio.sleep(1)
        yield
    finally:
        await Tortoise.close_connections()


async def generate_schema() -> None:
    """Create missing tables; existing ones are left as is"""
    _logger.info('Creating database schema')
    await Tortoise.generate_schemas(safe=True)


async def wipe_schema() -> None:
    """Delete every indexed row including the stored head"""
    async with in_transaction():
        for model in Tortoise.apps['models'].values():
            _logger.info('Wiping table `%s`', model._meta.db_table)
            await model.all().delete()
