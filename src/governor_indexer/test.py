"""Helpers for testing the indexer without a node.

These helpers are not part of the public API and can be changed without prior notice.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from eth_abi.abi import encode as encode_abi

from governor_indexer.abi import get_event_abi
from governor_indexer.context import HandlerContext
from governor_indexer.database import generate_schema
from governor_indexer.database import tortoise_wrapper
from governor_indexer.evm import EvmEvent
from governor_indexer.evm import EvmEventData
from governor_indexer.governor import CallResult
from governor_indexer.models import ProposalState
from governor_indexer.types import ProposalCanceledPayload
from governor_indexer.types import ProposalCreatedPayload
from governor_indexer.types import ProposalExecutedPayload
from governor_indexer.types import ProposalQueuedPayload
from governor_indexer.types import VoteCastPayload
from governor_indexer.types import VoteCastWithParamsPayload

GOVERNOR_ADDRESS = '0x91a8e4a070b4ba4bf2e2a51cb42bdedf8ffb9b5a'
PROPOSER_ADDRESS = '0x00000000000000000000000000000000000000aa'
DEFAULT_TIMESTAMP = 1_700_000_000


class DummyGovernor:
    """Governor binding with scripted results.

    Proposals without a scripted state report a failed call.
    """

    def __init__(self, quorum: int | None = 0) -> None:
        self.quorum_value = quorum
        self.states: dict[int, int] = {}
        self.calls: list[tuple[str, int]] = []

    def set_state(self, proposal_id: int, code: int) -> None:
        self.states[proposal_id] = code

    def fail_state(self, proposal_id: int) -> None:
        self.states.pop(proposal_id, None)

    async def quorum(self, level: int) -> CallResult[int]:
        self.calls.append(('quorum', level))
        if self.quorum_value is None:
            return CallResult.failed('execution reverted')
        return CallResult.ok(self.quorum_value)

    async def state(self, proposal_id: int, level: int | None = None) -> CallResult[ProposalState]:
        self.calls.append(('state', proposal_id))
        if proposal_id not in self.states:
            return CallResult.failed('execution reverted')
        return CallResult.ok(ProposalState.from_code(self.states[proposal_id]))


@asynccontextmanager
async def create_test_context(governor: DummyGovernor | None = None) -> AsyncIterator[HandlerContext]:
    """Initialize in-memory database and yield a handler context bound to it"""
    async with tortoise_wrapper('sqlite://:memory:', timeout=1):
        await generate_schema()
        yield HandlerContext(governor=governor or DummyGovernor())


def create_event_data(
    level: int = 1,
    timestamp: int = DEFAULT_TIMESTAMP,
    transaction_hash: str = '0x' + 'ab' * 32,
    transaction_index: int = 0,
    log_index: int = 0,
    address: str = GOVERNOR_ADDRESS,
    topics: tuple[str, ...] = (),
    data: str = '0x',
) -> EvmEventData:
    return EvmEventData(
        address=address,
        block_hash='0x' + '00' * 32,
        data=data,
        level=level,
        log_index=log_index,
        removed=False,
        timestamp=timestamp,
        topics=topics,
        transaction_hash=transaction_hash,
        transaction_index=transaction_index,
    )


def create_event(payload: Any, **kwargs: Any) -> EvmEvent[Any]:
    return EvmEvent(data=create_event_data(**kwargs), payload=payload)


def proposal_created(
    proposal_id: int,
    proposer: str = PROPOSER_ADDRESS,
    description: str = 'Fund the treasury',
    **kwargs: Any,
) -> EvmEvent[ProposalCreatedPayload]:
    payload = ProposalCreatedPayload(
        proposalId=proposal_id,
        proposer=proposer,
        targets=[GOVERNOR_ADDRESS],
        values=[0],
        signatures=[''],
        calldatas=['0x'],
        voteStart=100,
        voteEnd=200,
        description=description,
    )
    return create_event(payload, **kwargs)


def proposal_canceled(proposal_id: int, **kwargs: Any) -> EvmEvent[ProposalCanceledPayload]:
    return create_event(ProposalCanceledPayload(proposalId=proposal_id), **kwargs)


def proposal_executed(proposal_id: int, **kwargs: Any) -> EvmEvent[ProposalExecutedPayload]:
    return create_event(ProposalExecutedPayload(proposalId=proposal_id), **kwargs)


def proposal_queued(proposal_id: int, eta: int = 0, **kwargs: Any) -> EvmEvent[ProposalQueuedPayload]:
    return create_event(ProposalQueuedPayload(proposalId=proposal_id, etaSeconds=eta), **kwargs)


def vote_cast(
    proposal_id: int,
    voter: str,
    support: int,
    weight: int,
    reason: str = '',
    **kwargs: Any,
) -> EvmEvent[VoteCastPayload]:
    payload = VoteCastPayload(
        voter=voter,
        proposalId=proposal_id,
        support=support,
        weight=weight,
        reason=reason,
    )
    return create_event(payload, **kwargs)


def vote_cast_with_params(
    proposal_id: int,
    voter: str,
    support: int,
    weight: int,
    reason: str = '',
    params: str = '0x',
    **kwargs: Any,
) -> EvmEvent[VoteCastWithParamsPayload]:
    payload = VoteCastWithParamsPayload(
        voter=voter,
        proposalId=proposal_id,
        support=support,
        weight=weight,
        reason=reason,
        params=params,
    )
    return create_event(payload, **kwargs)


def encode_log(name: str, values: dict[str, Any], **kwargs: Any) -> EvmEventData:
    """Build a raw log of Governor event as a node would return it"""
    abi = get_event_abi(name)
    topics = [abi['topic0']]
    non_indexed_types, non_indexed_values = [], []

    for arg_name, (type_, indexed) in zip(abi['names'], abi['inputs'], strict=True):
        if indexed:
            topics.append('0x' + encode_abi([type_], [values[arg_name]]).hex())
        else:
            non_indexed_types.append(type_)
            non_indexed_values.append(values[arg_name])

    data = '0x' + encode_abi(non_indexed_types, non_indexed_values).hex() if non_indexed_types else '0x'
    return create_event_data(topics=tuple(topics), data=data, **kwargs)
