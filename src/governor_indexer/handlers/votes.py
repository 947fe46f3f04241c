from governor_indexer.context import HandlerContext
from governor_indexer.evm import EvmEvent
from governor_indexer.repositories import VOTES_COUNTER
from governor_indexer.types import VoteCastPayload
from governor_indexer.types import VoteCastWithParamsPayload


async def on_vote_cast(
    ctx: HandlerContext,
    event: EvmEvent[VoteCastPayload],
) -> None:
    await _cast_vote(ctx, event)


async def on_vote_cast_with_params(
    ctx: HandlerContext,
    event: EvmEvent[VoteCastWithParamsPayload],
) -> None:
    # NOTE: `params` are not stored
    await _cast_vote(ctx, event)


async def _cast_vote(
    ctx: HandlerContext,
    event: EvmEvent[VoteCastPayload] | EvmEvent[VoteCastWithParamsPayload],
) -> None:
    payload = event.payload
    proposal_id = str(payload.proposalId)

    # NOTE: Recorded even when the proposal is unknown
    await ctx.votes.record_vote(
        proposal_id=proposal_id,
        voter=payload.voter,
        support=payload.support,
        weight=payload.weight,
        reason=payload.reason,
        timestamp=event.data.timestamp,
    )
    await ctx.proposals.add_vote_weight(proposal_id, payload.support, payload.weight)
    await ctx.counters.increment(VOTES_COUNTER)
