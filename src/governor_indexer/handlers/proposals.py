from governor_indexer.context import HandlerContext
from governor_indexer.evm import EvmEvent
from governor_indexer.models import ProposalState
from governor_indexer.repositories import PROPOSALS_COUNTER
from governor_indexer.types import ProposalCanceledPayload
from governor_indexer.types import ProposalCreatedPayload
from governor_indexer.types import ProposalExecutedPayload
from governor_indexer.types import ProposalQueuedPayload


async def on_proposal_created(
    ctx: HandlerContext,
    event: EvmEvent[ProposalCreatedPayload],
) -> None:
    payload = event.payload
    id = str(payload.proposalId)
    await ctx.proposals.create(
        id=id,
        fields={
            'proposal_id': payload.proposalId,
            'proposer': payload.proposer,
            'targets': payload.targets,
            'call_values': [str(v) for v in payload.values],
            'signatures': payload.signatures,
            'calldatas': payload.calldatas,
            'vote_start': payload.voteStart,
            'vote_end': payload.voteEnd,
            'description': payload.description,
            'created_at': event.data.timestamp,
        },
        level=event.data.level,
    )
    await ctx.active_proposals.add(id)
    count = await ctx.counters.increment(PROPOSALS_COUNTER)
    ctx.logger.info('Proposal %s created by %s (%s total)', id, payload.proposer, count)


async def on_proposal_canceled(
    ctx: HandlerContext,
    event: EvmEvent[ProposalCanceledPayload],
) -> None:
    await _finalize(ctx, str(event.payload.proposalId), ProposalState.Canceled)


async def on_proposal_executed(
    ctx: HandlerContext,
    event: EvmEvent[ProposalExecutedPayload],
) -> None:
    await _finalize(ctx, str(event.payload.proposalId), ProposalState.Executed)


async def on_proposal_queued(
    ctx: HandlerContext,
    event: EvmEvent[ProposalQueuedPayload],
) -> None:
    id = str(event.payload.proposalId)
    # NOTE: Queued is not terminal; proposal stays in the active index
    proposal = await ctx.proposals.set_state(id, ProposalState.Queued)
    if proposal is None:
        ctx.logger.debug('ProposalQueued: unknown proposal %s', id)
        return
    ctx.logger.info('Proposal %s queued, eta %s', id, event.payload.etaSeconds)


async def _finalize(ctx: HandlerContext, id: str, state: ProposalState) -> None:
    proposal = await ctx.proposals.set_state(id, state)
    if proposal is None:
        ctx.logger.debug('Proposal%s: unknown proposal %s', state.value, id)
        return
    await ctx.active_proposals.remove(id)
    ctx.logger.info('Proposal %s is %s', id, state.value)
