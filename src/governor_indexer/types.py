"""Typed payloads of Governor events.

Field names follow the contract ABI; `governor_indexer.abi` fills them in ABI order.
"""

from __future__ import annotations

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import model_validator


class _Payload(BaseModel):
    model_config = ConfigDict(
        extra='forbid',
    )


class ProposalCreatedPayload(_Payload):
    proposalId: int
    proposer: str
    targets: list[str]
    values: list[int]
    signatures: list[str]
    calldatas: list[str]
    voteStart: int
    voteEnd: int
    description: str

    @model_validator(mode='after')
    def check_parallel_lists(self) -> ProposalCreatedPayload:
        lengths = {len(self.targets), len(self.values), len(self.signatures), len(self.calldatas)}
        if len(lengths) != 1:
            raise ValueError('`targets`, `values`, `signatures` and `calldatas` must have the same length')
        return self


class ProposalCanceledPayload(_Payload):
    proposalId: int


class ProposalExecutedPayload(_Payload):
    proposalId: int


class ProposalQueuedPayload(_Payload):
    proposalId: int
    etaSeconds: int


class VoteCastPayload(_Payload):
    voter: str
    proposalId: int
    support: int
    weight: int
    reason: str


class VoteCastWithParamsPayload(_Payload):
    voter: str
    proposalId: int
    support: int
    weight: int
    reason: str
    params: str


class EIP712DomainChangedPayload(_Payload):
    pass


class InitializedPayload(_Payload):
    version: int


class OwnershipTransferredPayload(_Payload):
    previousOwner: str
    newOwner: str


class UpgradedPayload(_Payload):
    implementation: str


class TimelockChangePayload(_Payload):
    oldTimelock: str
    newTimelock: str


class QuorumNumeratorUpdatedPayload(_Payload):
    oldQuorumNumerator: int
    newQuorumNumerator: int


class VotingDelaySetPayload(_Payload):
    oldVotingDelay: int
    newVotingDelay: int


class VotingPeriodSetPayload(_Payload):
    oldVotingPeriod: int
    newVotingPeriod: int


class ProposalThresholdSetPayload(_Payload):
    oldProposalThreshold: int
    newProposalThreshold: int


PAYLOADS: dict[str, type[BaseModel]] = {
    'EIP712DomainChanged': EIP712DomainChangedPayload,
    'Initialized': InitializedPayload,
    'OwnershipTransferred': OwnershipTransferredPayload,
    'ProposalCanceled': ProposalCanceledPayload,
    'ProposalCreated': ProposalCreatedPayload,
    'ProposalExecuted': ProposalExecutedPayload,
    'ProposalQueued': ProposalQueuedPayload,
    'ProposalThresholdSet': ProposalThresholdSetPayload,
    'QuorumNumeratorUpdated': QuorumNumeratorUpdatedPayload,
    'TimelockChange': TimelockChangePayload,
    'Upgraded': UpgradedPayload,
    'VoteCast': VoteCastPayload,
    'VoteCastWithParams': VoteCastWithParamsPayload,
    'VotingDelaySet': VotingDelaySetPayload,
    'VotingPeriodSet': VotingPeriodSetPayload,
}
