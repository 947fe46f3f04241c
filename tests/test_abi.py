import pytest

from governor_indexer.abi import get_event_abi
from governor_indexer.abi import get_event_abis
from governor_indexer.abi import parse_event
from governor_indexer.abi import topic0_from_abi
from governor_indexer.evm import EvmEventData
from governor_indexer.exceptions import InvalidDataError
from governor_indexer.test import encode_log
from governor_indexer.types import ProposalCreatedPayload
from governor_indexer.types import VoteCastPayload

VOTER = '0x00000000000000000000000000000000000000AA'


def test_event_abis() -> None:
    abis = get_event_abis()

    assert len(abis) == 15
    assert get_event_abi('VoteCast')['topic_count'] == 1
    assert get_event_abi('OwnershipTransferred')['topic_count'] == 2
    assert get_event_abi('ProposalCreated')['topic_count'] == 0


def test_topic0() -> None:
    # NOTE: Well-known topic of ERC-20 `Transfer` event
    transfer = {
        'type': 'event',
        'name': 'Transfer',
        'inputs': [
            {'name': 'from', 'type': 'address', 'indexed': True},
            {'name': 'to', 'type': 'address', 'indexed': True},
            {'name': 'value', 'type': 'uint256', 'indexed': False},
        ],
    }
    assert topic0_from_abi(transfer) == '0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef'
    assert get_event_abi('ProposalCanceled')['topic0'] == (
        '0x789cf55be980739dad1d0699b93b58e806b51c9d96619bfa8fe0a28abaa7b30c'
    )


def test_decode_mixed_indexed_inputs() -> None:
    # Arrange
    log = encode_log(
        'VoteCast',
        {
            'voter': VOTER,
            'proposalId': 2**255,
            'support': 1,
            'weight': 10**24,
            'reason': 'I like it',
        },
    )

    # Act
    event = parse_event(get_event_abi('VoteCast'), log)

    # Assert
    assert isinstance(event.payload, VoteCastPayload)
    assert event.payload.voter == VOTER.lower()
    assert event.payload.proposalId == 2**255
    assert event.payload.support == 1
    assert event.payload.weight == 10**24
    assert event.payload.reason == 'I like it'
    assert event.data is log


def test_decode_proposal_created() -> None:
    log = encode_log(
        'ProposalCreated',
        {
            'proposalId': 7,
            'proposer': VOTER,
            'targets': [VOTER, VOTER],
            'values': [0, 2**200],
            'signatures': ['', 'transfer(address,uint256)'],
            'calldatas': [b'', b'\xde\xad\xbe\xef'],
            'voteStart': 100,
            'voteEnd': 200,
            'description': '# Proposal',
        },
    )

    event = parse_event(get_event_abi('ProposalCreated'), log)

    assert isinstance(event.payload, ProposalCreatedPayload)
    assert event.payload.targets == [VOTER.lower(), VOTER.lower()]
    assert event.payload.values == [0, 2**200]
    assert event.payload.calldatas == ['0x', '0xdeadbeef']
    assert event.payload.description == '# Proposal'


def test_decode_unequal_lists() -> None:
    log = encode_log(
        'ProposalCreated',
        {
            'proposalId': 7,
            'proposer': VOTER,
            'targets': [VOTER, VOTER],
            'values': [0],
            'signatures': [''],
            'calldatas': [b''],
            'voteStart': 100,
            'voteEnd': 200,
            'description': '',
        },
    )

    with pytest.raises(InvalidDataError):
        parse_event(get_event_abi('ProposalCreated'), log)


def test_decode_event_without_inputs() -> None:
    log = encode_log('EIP712DomainChanged', {})

    event = parse_event(get_event_abi('EIP712DomainChanged'), log)

    assert event.payload.model_dump() == {}


def test_from_node_json() -> None:
    data = EvmEventData.from_node_json(
        {
            'address': '0x91a8e4a070b4ba4bf2e2a51cb42bdedf8ffb9b5a',
            'blockHash': '0x01',
            'blockNumber': '0x10',
            'data': '0x',
            'logIndex': '0x2',
            'topics': ['0x789cf55be980739dad1d0699b93b58e806b51c9d96619bfa8fe0a28abaa7b30c'],
            'transactionHash': '0x02',
            'transactionIndex': '0x3',
        },
        timestamp=1234,
    )

    assert data.level == 16
    assert data.log_index == 2
    assert data.transaction_index == 3
    assert data.removed is False
    assert data.timestamp == 1234
