from governor_indexer import models
from governor_indexer.models import TRACKER_ID
from governor_indexer.models import ProposalState
from governor_indexer.repositories import vote_key
from governor_indexer.test import DummyGovernor
from governor_indexer.test import create_test_context

PROPOSAL_FIELDS = {
    'proposal_id': 7,
    'proposer': '0x00000000000000000000000000000000000000aa',
    'targets': ['0x00000000000000000000000000000000000000bb'],
    'call_values': ['0'],
    'signatures': [''],
    'calldatas': ['0x'],
    'vote_start': 100,
    'vote_end': 200,
    'description': 'Fund the treasury',
    'created_at': 1700000000,
}


async def test_counter_increment() -> None:
    async with create_test_context() as ctx:
        assert await ctx.counters.get('proposals') == 0

        assert await ctx.counters.increment('proposals') == 1
        assert await ctx.counters.increment('proposals') == 2
        assert await ctx.counters.increment('votes') == 1

        assert await ctx.counters.get('proposals') == 2
        assert (await models.Counter.get(id='votes')).count == 1


async def test_active_index_ensure_is_idempotent() -> None:
    async with create_test_context() as ctx:
        assert await ctx.active_proposals.load() is None

        first = await ctx.active_proposals.ensure()
        second = await ctx.active_proposals.ensure()

        assert first.id == second.id == TRACKER_ID
        assert second.active_proposals == []
        assert await models.ActiveProposalTracker.all().count() == 1


async def test_active_index_add_remove() -> None:
    async with create_test_context() as ctx:
        # Arrange
        await ctx.active_proposals.add('1')
        await ctx.active_proposals.add('2')
        await ctx.active_proposals.add('3')

        # Act
        removed = await ctx.active_proposals.remove('2')
        removed_again = await ctx.active_proposals.remove('2')
        removed_unknown = await ctx.active_proposals.remove('42')

        # Assert
        assert removed is True
        assert removed_again is False
        assert removed_unknown is False
        tracker = await models.ActiveProposalTracker.get(id=TRACKER_ID)
        assert tracker.active_proposals == ['1', '3']
        assert await ctx.active_proposals.snapshot() == ('1', '3')


async def test_proposal_create() -> None:
    async with create_test_context(DummyGovernor(quorum=1000)) as ctx:
        await ctx.proposals.create('7', dict(PROPOSAL_FIELDS), level=10)

        proposal = await ctx.proposals.load('7')
        assert proposal is not None
        assert proposal.state == ProposalState.Pending
        assert proposal.quorum_votes == 1000
        assert proposal.for_votes == proposal.against_votes == proposal.abstain_votes == 0
        assert proposal.targets == ['0x00000000000000000000000000000000000000bb']
        assert proposal.call_values == ['0']


async def test_proposal_create_quorum_failed() -> None:
    async with create_test_context(DummyGovernor(quorum=None)) as ctx:
        proposal = await ctx.proposals.create('7', dict(PROPOSAL_FIELDS), level=10)

        assert proposal.quorum_votes == 0
        assert (await models.Proposal.get(id='7')).quorum_votes == 0


async def test_proposal_uint256_values() -> None:
    async with create_test_context(DummyGovernor(quorum=2**256 - 1)) as ctx:
        proposal_id = 2**255 + 1
        fields = {**PROPOSAL_FIELDS, 'proposal_id': proposal_id, 'call_values': [str(2**200)]}
        await ctx.proposals.create(str(proposal_id), fields, level=10)

        proposal = await models.Proposal.get(id=str(proposal_id))
        assert proposal.proposal_id == proposal_id
        assert proposal.quorum_votes == 2**256 - 1
        assert isinstance(proposal.quorum_votes, int)
        assert proposal.call_values == [str(2**200)]


async def test_proposal_missing() -> None:
    async with create_test_context() as ctx:
        assert await ctx.proposals.load('7') is None
        assert await ctx.proposals.set_state('7', ProposalState.Canceled) is None
        assert await ctx.proposals.add_vote_weight('7', 1, 100) is None
        assert await models.Proposal.all().count() == 0


async def test_add_vote_weight() -> None:
    async with create_test_context() as ctx:
        # Arrange
        await ctx.proposals.create('7', dict(PROPOSAL_FIELDS), level=10)

        # Act
        await ctx.proposals.add_vote_weight('7', 0, 10)
        await ctx.proposals.add_vote_weight('7', 1, 500)
        await ctx.proposals.add_vote_weight('7', 1, 250)
        await ctx.proposals.add_vote_weight('7', 2, 5)
        await ctx.proposals.add_vote_weight('7', 3, 1000)

        # Assert
        proposal = await models.Proposal.get(id='7')
        assert proposal.against_votes == 10
        assert proposal.for_votes == 750
        assert proposal.abstain_votes == 5


async def test_record_vote_last_write_wins() -> None:
    async with create_test_context() as ctx:
        voter = '0x00000000000000000000000000000000000000AA'

        await ctx.votes.record_vote('7', voter, 1, 500, 'yes', 100)
        await ctx.votes.record_vote('7', voter, 0, 300, 'changed my mind', 200)

        assert await models.Vote.all().count() == 1
        vote = await models.Vote.get(id=vote_key('7', voter))
        assert vote.id == '7-0x00000000000000000000000000000000000000aa'
        assert vote.voter == '0x00000000000000000000000000000000000000aa'
        assert vote.support == 0
        assert vote.weight == 300
        assert vote.reason == 'changed my mind'
        assert vote.timestamp == 200
