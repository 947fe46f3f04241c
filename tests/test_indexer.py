from pathlib import Path
from typing import Any

from governor_indexer import models
from governor_indexer.config import GovernorIndexerConfig
from governor_indexer.config import HttpConfig
from governor_indexer.evm import EvmEventData
from governor_indexer.evm import EvmHeadData
from governor_indexer.index import GovernorIndex
from governor_indexer.indexer import GovernorIndexer
from governor_indexer.models import ProposalState
from governor_indexer.test import GOVERNOR_ADDRESS
from governor_indexer.test import PROPOSER_ADDRESS
from governor_indexer.test import DummyGovernor
from governor_indexer.test import create_test_context
from governor_indexer.test import encode_log

CONFIG = """
spec_version: 1.0

datasource:
  kind: evm.node
  url: https://localhost:4444

governor:
  address: '0x91a8E4a070b4BA4BF2E2a51CB42BDEdf8fFb9B5a'

indexer:
  first_level: 10
  last_level: 14
"""


def _node_json(event: EvmEventData) -> dict[str, Any]:
    return {
        'address': event.address,
        'blockHash': event.block_hash,
        'blockNumber': hex(event.level),
        'data': event.data,
        'logIndex': hex(event.log_index),
        'topics': list(event.topics),
        'transactionHash': event.transaction_hash,
        'transactionIndex': hex(event.transaction_index),
    }


class FakeNode:
    name = 'node'
    http_config = HttpConfig(batch_size=2, polling_interval=0)

    def __init__(self, head_level: int, logs: list[EvmEventData]) -> None:
        self.head_level = head_level
        self.logs = [_node_json(log) for log in logs]
        self.logs_requests: list[tuple[int, int]] = []
        self.block_requests: list[int] = []

    async def get_head_level(self) -> int:
        return self.head_level

    async def get_logs(self, address: str | None, first_level: int, last_level: int) -> list[dict[str, Any]]:
        self.logs_requests.append((first_level, last_level))
        return [log for log in self.logs if first_level <= int(log['blockNumber'], 16) <= last_level]

    async def get_block_by_level(self, level: int) -> EvmHeadData:
        self.block_requests.append(level)
        return EvmHeadData(level=level, hash=f'0x{level:064x}', timestamp=1_700_000_000 + level)


def _load_config(tmp_path: Path) -> GovernorIndexerConfig:
    path = tmp_path / 'governor.yaml'
    path.write_text(CONFIG)
    return GovernorIndexerConfig.load([path])


async def test_sync(tmp_path: Path) -> None:
    # Arrange
    config = _load_config(tmp_path)
    governor = DummyGovernor(quorum=1000)
    governor.set_state(7, 1)
    node = FakeNode(
        head_level=20,
        logs=[
            encode_log(
                'ProposalCreated',
                {
                    'proposalId': 7,
                    'proposer': PROPOSER_ADDRESS,
                    'targets': [GOVERNOR_ADDRESS],
                    'values': [0],
                    'signatures': [''],
                    'calldatas': [b''],
                    'voteStart': 12,
                    'voteEnd': 100,
                    'description': 'Proposal #7',
                },
                level=11,
            ),
            encode_log(
                'VoteCast',
                {
                    'voter': PROPOSER_ADDRESS,
                    'proposalId': 7,
                    'support': 1,
                    'weight': 500,
                    'reason': '',
                },
                level=13,
            ),
        ],
    )

    async with create_test_context(governor) as ctx:
        indexer = GovernorIndexer(config)
        indexer._datasource = node  # type: ignore[assignment]
        indexer._ctx = ctx
        indexer._index = GovernorIndex(config.indexer.name, ctx, config.governor.address)

        # Act
        await indexer._sync()

        # Assert
        assert node.logs_requests == [(10, 11), (12, 13), (14, 14)]
        assert node.block_requests == [11, 13]

        proposal = await models.Proposal.get(id='7')
        assert proposal.state == ProposalState.Active
        assert proposal.for_votes == 500
        assert proposal.created_at == 1_700_000_011

        head = await models.Head.get(name='governor')
        assert head.level == 14


async def test_sync_resumes_from_head(tmp_path: Path) -> None:
    # Arrange
    config = _load_config(tmp_path)
    node = FakeNode(head_level=14, logs=[])

    async with create_test_context() as ctx:
        await models.Head.create(name='governor', level=12)
        indexer = GovernorIndexer(config)
        indexer._datasource = node  # type: ignore[assignment]
        indexer._index = GovernorIndex(config.indexer.name, ctx, config.governor.address)

        # Act
        await indexer._sync()

        # Assert
        assert node.logs_requests == [(13, 14)]
        assert node.block_requests == []
        head = await models.Head.get(name='governor')
        assert head.level == 14
