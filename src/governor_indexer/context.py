from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from governor_indexer.repositories import ActiveProposalIndex
from governor_indexer.repositories import CounterStore
from governor_indexer.repositories import ProposalRepository
from governor_indexer.repositories import VoteRepository

if TYPE_CHECKING:
    from governor_indexer.governor import GovernorContract


class HandlerContext:
    """Execution context of event handlers and the block reconciler.

    :param governor: Authoritative Governor contract reads
    :param active_proposals: Index of non-terminal proposals
    :param proposals: Proposal repository
    :param votes: Vote repository
    :param counters: Counter store
    :param logger: Logger instance
    """

    def __init__(
        self,
        governor: GovernorContract,
        active_proposals: ActiveProposalIndex | None = None,
        counters: CounterStore | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.governor = governor
        self.active_proposals = active_proposals or ActiveProposalIndex()
        self.counters = counters or CounterStore()
        self.proposals = ProposalRepository(governor)
        self.votes = VoteRepository()
        self.logger = logger or logging.getLogger('governor_indexer.handlers')
