"""Matching raw logs to handlers and processing them level by level"""

import logging
import time
from collections import deque
from collections.abc import Awaitable
from collections.abc import Callable
from collections.abc import Iterable
from typing import Any

from tortoise.transactions import in_transaction

from governor_indexer import models
from governor_indexer.abi import get_event_abis
from governor_indexer.abi import parse_event
from governor_indexer.context import HandlerContext
from governor_indexer.evm import EvmEvent
from governor_indexer.evm import EvmEventData
from governor_indexer.evm import EvmHeadData
from governor_indexer.exceptions import FrameworkException
from governor_indexer.exceptions import InvalidDataError
from governor_indexer.handlers import audit
from governor_indexer.handlers import proposals
from governor_indexer.handlers import votes
from governor_indexer.prometheus import Metrics
from governor_indexer.reconciler import BlockReconciler

Handler = Callable[[HandlerContext, EvmEvent[Any]], Awaitable[None]]
MatchedEventsT = tuple[str, Handler, EvmEvent[Any]]

HANDLERS: dict[str, Handler] = {
    'ProposalCreated': proposals.on_proposal_created,
    'ProposalCanceled': proposals.on_proposal_canceled,
    'ProposalExecuted': proposals.on_proposal_executed,
    'ProposalQueued': proposals.on_proposal_queued,
    'VoteCast': votes.on_vote_cast,
    'VoteCastWithParams': votes.on_vote_cast_with_params,
    'OwnershipTransferred': audit.on_ownership_transferred,
    'EIP712DomainChanged': audit.on_eip712_domain_changed,
    'Initialized': audit.on_initialized,
    'Upgraded': audit.on_upgraded,
    'TimelockChange': audit.on_timelock_change,
    'QuorumNumeratorUpdated': audit.on_quorum_numerator_updated,
    'VotingDelaySet': audit.on_voting_delay_set,
    'VotingPeriodSet': audit.on_voting_period_set,
    'ProposalThresholdSet': audit.on_proposal_threshold_set,
}

_logger = logging.getLogger(__name__)


def match_events(
    events: Iterable[EvmEventData],
    address: str | None = None,
) -> deque[MatchedEventsT]:
    """Try to match logs with Governor event handlers; unknown logs are skipped."""
    matched_handlers: deque[MatchedEventsT] = deque()
    abis = get_event_abis()

    for event in sorted(events, key=lambda e: (e.transaction_index, e.log_index)):
        if event.removed or not event.topics:
            continue

        abi = abis.get(event.topics[0])
        if abi is None:
            continue
        if len(event.topics) != abi['topic_count'] + 1:
            continue
        if address and address != event.address.lower():
            continue

        try:
            arg = parse_event(abi, event)
        except InvalidDataError as e:
            _logger.warning(
                'Skipping malformed `%s` log %s-%s: %s',
                abi['name'],
                event.transaction_hash,
                event.log_index,
                e.msg,
            )
            continue

        matched_handlers.append((abi['name'], HANDLERS[abi['name']], arg))

    _logger.debug('%d handlers matched', len(matched_handlers))
    return matched_handlers


class GovernorIndex:
    """Applies Governor events and block ticks to the database strictly in order"""

    def __init__(
        self,
        name: str,
        ctx: HandlerContext,
        address: str | None = None,
    ) -> None:
        self._name = name
        self._ctx = ctx
        self._address = address.lower() if address else None
        self._reconciler = BlockReconciler(ctx)
        self._head: models.Head | None = None
        self._level = -1

    @property
    def name(self) -> str:
        return self._name

    @property
    def level(self) -> int:
        """Last processed level"""
        return self._level

    async def initialize(self, first_level: int) -> int:
        """Load stored head; returns the next level to process"""
        self._head = await models.Head.get_or_none(name=self._name)
        if self._head is None:
            self._level = first_level - 1
            _logger.info('`%s`: starting from level %s', self._name, first_level)
        else:
            self._level = self._head.level
            _logger.info('`%s`: resuming from level %s', self._name, self._level + 1)
        return self._level + 1

    async def process_level(
        self,
        level: int,
        events: Iterable[EvmEventData] = (),
        head: EvmHeadData | None = None,
    ) -> int:
        """Run handlers of the level, then the reconciler. Returns the number of reconciled proposals."""
        if level <= self._level:
            raise FrameworkException(f'Level is lower than index level: {level} <= {self._level}')

        started_at = time.time()
        matched_handlers = match_events(events, self._address)

        # NOTE: Nothing to do; bump level in memory, head is saved on the next write or `commit`
        if not matched_handlers and not await self._ctx.active_proposals.snapshot():
            self._level = level
            return 0

        async with in_transaction():
            for event_name, handler, event in matched_handlers:
                Metrics.inc_event(event_name)
                await handler(self._ctx, event)

            updated = await self._reconciler.reconcile(level)
            await self._update_head(level, head)

        self._level = level
        Metrics.set_level_indexed(self._name, level)
        Metrics.observe_level_time(self._name, time.time() - started_at)
        return updated

    async def commit(self) -> None:
        """Persist the level bumped by empty ticks"""
        if self._level < 0:
            return
        if self._head is not None and self._head.level >= self._level:
            return
        await self._update_head(self._level, None)
        Metrics.set_level_indexed(self._name, self._level)

    async def _update_head(self, level: int, head: EvmHeadData | None) -> None:
        if self._head is None:
            self._head = models.Head(name=self._name, level=level)

        self._head.level = level
        self._head.hash = head.hash if head else None
        self._head.timestamp = head.timestamp if head else None
        await self._head.save()
