import logging
import platform

import sentry_sdk
from sentry_sdk.integrations.aiohttp import AioHttpIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from governor_indexer import __version__
from governor_indexer import env
from governor_indexer.config import SentryConfig

_logger = logging.getLogger(__name__)


def _guess_environment() -> str:
    if env.DOCKER:
        return 'docker'
    if env.TEST:
        return 'tests'
    if env.CI:
        return 'ci'
    return 'local'


def init_sentry(config: SentryConfig) -> None:
    """Report errors logged by the indexer; `debug` reports warnings too"""
    if not config.dsn:
        return

    environment = config.environment or _guess_environment()
    _logger.info('Reporting errors to Sentry (environment `%s`)', environment)

    sentry_sdk.init(
        dsn=config.dsn,
        release=config.release or __version__,
        environment=environment,
        integrations=[
            AioHttpIntegration(),
            LoggingIntegration(
                level=logging.INFO,
                event_level=logging.WARNING if config.debug or env.DEBUG else logging.ERROR,
            ),
        ],
        attach_stacktrace=config.debug,
    )
    sentry_sdk.set_tag('python', platform.python_version())
    sentry_sdk.set_tag('governor_indexer', __version__)
