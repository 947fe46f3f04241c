"""Append-only records of administrative Governor events"""

from typing import Any

from governor_indexer import models
from governor_indexer.context import HandlerContext
from governor_indexer.evm import EvmEvent
from governor_indexer.types import EIP712DomainChangedPayload
from governor_indexer.types import InitializedPayload
from governor_indexer.types import OwnershipTransferredPayload
from governor_indexer.types import ProposalThresholdSetPayload
from governor_indexer.types import QuorumNumeratorUpdatedPayload
from governor_indexer.types import TimelockChangePayload
from governor_indexer.types import UpgradedPayload
from governor_indexer.types import VotingDelaySetPayload
from governor_indexer.types import VotingPeriodSetPayload


def audit_id(event: EvmEvent[Any]) -> str:
    return f'{event.data.transaction_hash}-{event.data.log_index}'


def _block_fields(event: EvmEvent[Any]) -> dict[str, Any]:
    return {
        'id': audit_id(event),
        'block_number': event.data.level,
        'block_timestamp': event.data.timestamp,
        'transaction_hash': event.data.transaction_hash,
    }


async def on_ownership_transferred(
    ctx: HandlerContext,
    event: EvmEvent[OwnershipTransferredPayload],
) -> None:
    await models.OwnershipTransferred.create(
        previous_owner=event.payload.previousOwner,
        new_owner=event.payload.newOwner,
        **_block_fields(event),
    )
    ctx.logger.info('Ownership transferred: %s -> %s', event.payload.previousOwner, event.payload.newOwner)


async def on_eip712_domain_changed(
    ctx: HandlerContext,
    event: EvmEvent[EIP712DomainChangedPayload],
) -> None:
    await models.EIP712DomainChanged.create(**_block_fields(event))


async def on_initialized(
    ctx: HandlerContext,
    event: EvmEvent[InitializedPayload],
) -> None:
    await models.Initialized.create(
        version=event.payload.version,
        **_block_fields(event),
    )


async def on_upgraded(
    ctx: HandlerContext,
    event: EvmEvent[UpgradedPayload],
) -> None:
    await models.Upgraded.create(
        implementation=event.payload.implementation,
        **_block_fields(event),
    )
    ctx.logger.info('Governor upgraded to %s', event.payload.implementation)


async def on_timelock_change(
    ctx: HandlerContext,
    event: EvmEvent[TimelockChangePayload],
) -> None:
    await models.TimelockChange.create(
        old_timelock=event.payload.oldTimelock,
        new_timelock=event.payload.newTimelock,
        **_block_fields(event),
    )


async def on_quorum_numerator_updated(
    ctx: HandlerContext,
    event: EvmEvent[QuorumNumeratorUpdatedPayload],
) -> None:
    await models.QuorumNumeratorUpdated.create(
        old_quorum_numerator=event.payload.oldQuorumNumerator,
        new_quorum_numerator=event.payload.newQuorumNumerator,
        **_block_fields(event),
    )


async def on_voting_delay_set(
    ctx: HandlerContext,
    event: EvmEvent[VotingDelaySetPayload],
) -> None:
    await models.VotingDelaySet.create(
        old_voting_delay=event.payload.oldVotingDelay,
        new_voting_delay=event.payload.newVotingDelay,
        **_block_fields(event),
    )


async def on_voting_period_set(
    ctx: HandlerContext,
    event: EvmEvent[VotingPeriodSetPayload],
) -> None:
    await models.VotingPeriodSet.create(
        old_voting_period=event.payload.oldVotingPeriod,
        new_voting_period=event.payload.newVotingPeriod,
        **_block_fields(event),
    )


async def on_proposal_threshold_set(
    ctx: HandlerContext,
    event: EvmEvent[ProposalThresholdSetPayload],
) -> None:
    await models.ProposalThresholdSet.create(
        old_proposal_threshold=event.payload.oldProposalThreshold,
        new_proposal_threshold=event.payload.newProposalThreshold,
        **_block_fields(event),
    )
