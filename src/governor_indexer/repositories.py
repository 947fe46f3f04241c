"""Stores over the indexed entities.

All operations are read-then-write; callers process one event at a time.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING
from typing import Any

from governor_indexer import models
from governor_indexer.models import TRACKER_ID
from governor_indexer.models import ProposalState
from governor_indexer.models import VoteSupport

if TYPE_CHECKING:
    from governor_indexer.governor import GovernorContract

_logger = logging.getLogger(__name__)

PROPOSALS_COUNTER = 'proposals'
VOTES_COUNTER = 'votes'


def vote_key(proposal_id: int | str, voter: str) -> str:
    return f'{proposal_id}-{voter.lower()}'


class CounterStore:
    async def increment(self, name: str) -> int:
        counter, _ = await models.Counter.get_or_create(id=name, defaults={'count': 0})
        counter.count += 1
        await counter.save()
        return counter.count

    async def get(self, name: str) -> int:
        counter = await models.Counter.get_or_none(id=name)
        return counter.count if counter else 0


class ActiveProposalIndex:
    """Ordered set of proposals that are not in a terminal state"""

    def __init__(self) -> None:
        self._lock = asyncio.Lock()

    async def ensure(self) -> models.ActiveProposalTracker:
        tracker, _ = await models.ActiveProposalTracker.get_or_create(
            id=TRACKER_ID,
            defaults={'active_proposals': []},
        )
        return tracker

    async def load(self) -> models.ActiveProposalTracker | None:
        return await models.ActiveProposalTracker.get_or_none(id=TRACKER_ID)

    async def add(self, proposal_id: str) -> None:
        async with self._lock:
            tracker = await self.ensure()
            # NOTE: Proposal ids are unique, so no duplicate check here
            tracker.active_proposals = [*tracker.active_proposals, proposal_id]
            await tracker.save()

    async def remove(self, proposal_id: str) -> bool:
        async with self._lock:
            tracker = await self.ensure()
            if proposal_id not in tracker.active_proposals:
                return False

            active_proposals = list(tracker.active_proposals)
            active_proposals.remove(proposal_id)
            tracker.active_proposals = active_proposals
            await tracker.save()
            return True

    async def snapshot(self) -> tuple[str, ...]:
        tracker = await self.load()
        return tuple(tracker.active_proposals) if tracker else ()


class ProposalRepository:
    def __init__(self, governor: GovernorContract) -> None:
        self._governor = governor

    async def create(self, id: str, fields: dict[str, Any], level: int) -> models.Proposal:
        quorum = await self._governor.quorum(level)
        if quorum.is_ok:
            quorum_votes = quorum.unwrap()
        else:
            _logger.warning('Failed to fetch quorum for proposal %s at level %s: %s', id, level, quorum.error)
            quorum_votes = 0

        proposal = models.Proposal(
            id=id,
            state=ProposalState.Pending,
            for_votes=0,
            against_votes=0,
            abstain_votes=0,
            quorum_votes=quorum_votes,
            **fields,
        )
        await proposal.save()
        return proposal

    async def load(self, id: str) -> models.Proposal | None:
        return await models.Proposal.get_or_none(id=id)

    async def save(self, proposal: models.Proposal) -> None:
        await proposal.save()

    async def set_state(self, id: str, state: ProposalState) -> models.Proposal | None:
        proposal = await self.load(id)
        if proposal is None:
            _logger.debug('Proposal %s not found; state %s is not applied', id, state.value)
            return None

        proposal.state = state
        await proposal.save()
        return proposal

    async def add_vote_weight(self, id: str, support: int, weight: int) -> models.Proposal | None:
        proposal = await self.load(id)
        if proposal is None:
            _logger.debug('Proposal %s not found; vote weight is not counted', id)
            return None

        if support == VoteSupport.against:
            proposal.against_votes += weight
        elif support == VoteSupport.for_:
            proposal.for_votes += weight
        elif support == VoteSupport.abstain:
            proposal.abstain_votes += weight
        else:
            _logger.debug('Unknown support code %s for proposal %s; tallies unchanged', support, id)
            return proposal

        await proposal.save()
        return proposal


class VoteRepository:
    async def record_vote(
        self,
        proposal_id: str,
        voter: str,
        support: int,
        weight: int,
        reason: str,
        timestamp: int,
    ) -> models.Vote:
        vote, _ = await models.Vote.update_or_create(
            id=vote_key(proposal_id, voter),
            defaults={
                'proposal_id': proposal_id,
                'voter': voter.lower(),
                'support': support,
                'weight': weight,
                'reason': reason,
                'timestamp': timestamp,
            },
        )
        return vote

    async def load(self, proposal_id: str, voter: str) -> models.Vote | None:
        return await models.Vote.get_or_none(id=vote_key(proposal_id, voter))
