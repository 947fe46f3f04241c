"""Process-wide logging setup"""

import logging
import sys
from collections.abc import Mapping

import orjson
from pydantic_core import to_jsonable_python
from pythonjsonlogger import jsonlogger

from governor_indexer import env

LOG_FORMAT = '%(levelname)-8s %(name)-20s %(message)s'

# NOTE: Loggers of dependencies that are too chatty below WARNING
QUIET_LOGGERS = ('tortoise', 'web3', 'aiosqlite', 'asyncio')

_handler: logging.Handler | None = None


def _create_formatter() -> logging.Formatter:
    if not env.JSON_LOG:
        return logging.Formatter(LOG_FORMAT)
    return jsonlogger.JsonFormatter(  # type: ignore[no-untyped-call]
        '%(levelname)s %(name)s %(message)s',
        json_serializer=lambda *a, **kw: orjson.dumps(*a, default=to_jsonable_python).decode(),
    )


def set_up_logging(levels: Mapping[str, int] | None = None) -> None:
    """Install a stdout handler once and apply logger levels.

    `GOVERNOR_DEBUG` overrides the level of `governor_indexer` loggers.
    """
    global _handler
    if _handler is None:
        _handler = logging.StreamHandler(stream=sys.stdout)
        _handler.setFormatter(_create_formatter())
        logging.getLogger().addHandler(_handler)
        logging.captureWarnings(True)
        for name in QUIET_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)

    levels = {'governor_indexer': logging.INFO, **(levels or {})}
    if env.DEBUG:
        levels['governor_indexer'] = logging.DEBUG

    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
