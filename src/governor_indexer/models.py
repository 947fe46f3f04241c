from __future__ import annotations

from enum import Enum
from enum import IntEnum

from tortoise.models import Model as TortoiseModel

from governor_indexer import fields

TRACKER_ID = '1'

# NOTE: uint256 in decimal notation
PROPOSAL_ID_LENGTH = 78
ADDRESS_LENGTH = 42
# NOTE: `{proposal_id}-{voter}`
VOTE_ID_LENGTH = PROPOSAL_ID_LENGTH + 1 + ADDRESS_LENGTH
# NOTE: `{transaction_hash}-{log_index}`
EVENT_ID_LENGTH = 96
NAME_LENGTH = 255


class ProposalState(Enum):
    """Proposal lifecycle state; declaration order matches `IGovernor.ProposalState` codes"""

    Pending = 'Pending'
    Active = 'Active'
    Canceled = 'Canceled'
    Defeated = 'Defeated'
    Succeeded = 'Succeeded'
    Queued = 'Queued'
    Expired = 'Expired'
    Executed = 'Executed'
    # NOTE: Not a contract state; any code the contract may add after an upgrade
    Unknown = 'Unknown'

    @classmethod
    def from_code(cls, code: int) -> ProposalState:
        """Map a numeric state returned by `Governor.state()`"""
        if 0 <= code < len(_STATE_CODES):
            return _STATE_CODES[code]
        return cls.Unknown

    @property
    def terminal(self) -> bool:
        return self in TERMINAL_STATES


_STATE_CODES = tuple(s for s in ProposalState if s is not ProposalState.Unknown)

TERMINAL_STATES = frozenset(
    (
        ProposalState.Canceled,
        ProposalState.Defeated,
        ProposalState.Executed,
        ProposalState.Expired,
    )
)


class VoteSupport(IntEnum):
    against = 0
    for_ = 1
    abstain = 2


class Model(TortoiseModel):
    """Base class for project models"""

    class Meta:
        abstract = True


# ===> Built-in Models


class Head(TortoiseModel):
    name = fields.CharField(max_length=NAME_LENGTH, pk=True)
    level = fields.BigIntField()
    hash = fields.TextField(null=True)
    timestamp = fields.BigIntField(null=True)

    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = 'governor_head'


# ===> Governance entities


class Proposal(Model):
    id = fields.CharField(max_length=PROPOSAL_ID_LENGTH, pk=True)
    proposal_id = fields.Uint256Field()
    proposer = fields.TextField()
    # NOTE: Four parallel lists of the same length
    targets = fields.ArrayField()
    call_values = fields.ArrayField()
    signatures = fields.ArrayField()
    calldatas = fields.ArrayField()
    vote_start = fields.BigIntField()
    vote_end = fields.BigIntField()
    description = fields.TextField()
    state = fields.EnumField(ProposalState, default=ProposalState.Pending)
    created_at = fields.BigIntField()
    for_votes = fields.Uint256Field(default=0)
    against_votes = fields.Uint256Field(default=0)
    abstain_votes = fields.Uint256Field(default=0)
    # quorum at the block the proposal was created at; zero if unavailable
    quorum_votes = fields.Uint256Field(default=0)

    class Meta:
        table = 'proposal'


class Vote(Model):
    id = fields.CharField(max_length=VOTE_ID_LENGTH, pk=True)
    # NOTE: Not a foreign key; votes for unknown proposals are recorded too
    proposal_id = fields.CharField(max_length=PROPOSAL_ID_LENGTH, index=True)
    voter = fields.CharField(max_length=ADDRESS_LENGTH, index=True)
    support = fields.IntField()
    weight = fields.Uint256Field()
    reason = fields.TextField()
    timestamp = fields.BigIntField()

    class Meta:
        table = 'vote'


class ActiveProposalTracker(Model):
    id = fields.CharField(max_length=NAME_LENGTH, pk=True)
    active_proposals = fields.ArrayField()

    class Meta:
        table = 'active_proposal_tracker'


class Counter(Model):
    id = fields.CharField(max_length=NAME_LENGTH, pk=True)
    count = fields.BigIntField(default=0)

    class Meta:
        table = 'counter'


# ===> Audit log of administrative events


class GovernorEvent(Model):
    id = fields.CharField(max_length=EVENT_ID_LENGTH, pk=True)
    block_number = fields.BigIntField()
    block_timestamp = fields.BigIntField()
    transaction_hash = fields.TextField()

    class Meta:
        abstract = True


class OwnershipTransferred(GovernorEvent):
    previous_owner = fields.TextField()
    new_owner = fields.TextField()

    class Meta:
        table = 'ownership_transferred'


class EIP712DomainChanged(GovernorEvent):
    class Meta:
        table = 'eip712_domain_changed'


class Initialized(GovernorEvent):
    version = fields.Uint256Field()

    class Meta:
        table = 'initialized'


class Upgraded(GovernorEvent):
    implementation = fields.TextField()

    class Meta:
        table = 'upgraded'


class TimelockChange(GovernorEvent):
    old_timelock = fields.TextField()
    new_timelock = fields.TextField()

    class Meta:
        table = 'timelock_change'


class QuorumNumeratorUpdated(GovernorEvent):
    old_quorum_numerator = fields.Uint256Field()
    new_quorum_numerator = fields.Uint256Field()

    class Meta:
        table = 'quorum_numerator_updated'


class VotingDelaySet(GovernorEvent):
    old_voting_delay = fields.Uint256Field()
    new_voting_delay = fields.Uint256Field()

    class Meta:
        table = 'voting_delay_set'


class VotingPeriodSet(GovernorEvent):
    old_voting_period = fields.Uint256Field()
    new_voting_period = fields.Uint256Field()

    class Meta:
        table = 'voting_period_set'


class ProposalThresholdSet(GovernorEvent):
    old_proposal_threshold = fields.Uint256Field()
    new_proposal_threshold = fields.Uint256Field()

    class Meta:
        table = 'proposal_threshold_set'
