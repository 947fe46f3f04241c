import logging

from governor_indexer.context import HandlerContext
from governor_indexer.prometheus import Metrics

_logger = logging.getLogger(__name__)


class BlockReconciler:
    """Corrects stored proposal states with the ones reported by the Governor contract.

    Runs once per block after all handlers of that block. Every active proposal costs one
    `state()` call per block.
    """

    def __init__(self, ctx: HandlerContext) -> None:
        self._ctx = ctx

    async def reconcile(self, level: int) -> int:
        """Returns the number of proposals whose state was overwritten"""
        tracker = await self._ctx.active_proposals.load()
        if tracker is None:
            return 0

        updated = 0
        # NOTE: Copy; removals below mutate the tracker
        for id in tuple(tracker.active_proposals):
            proposal = await self._ctx.proposals.load(id)
            if proposal is None:
                _logger.debug('Tracked proposal %s is unknown; skipping', id)
                continue

            result = await self._ctx.governor.state(int(id), level)
            if not result.is_ok:
                _logger.warning('Failed to fetch state of proposal %s at level %s: %s', id, level, result.error)
                continue

            state = result.unwrap()
            if state == proposal.state:
                continue

            _logger.info('Proposal %s: %s -> %s', id, proposal.state.value, state.value)
            proposal.state = state
            await self._ctx.proposals.save(proposal)
            Metrics.inc_proposal_state_updated(state.value)
            updated += 1

            if state.terminal:
                await self._ctx.active_proposals.remove(id)

        return updated
