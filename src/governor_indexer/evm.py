from dataclasses import dataclass
from typing import Any
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel

PayloadT = TypeVar('PayloadT', bound=BaseModel)


def _quantity(value: str) -> int:
    """Decode a JSON-RPC hex quantity"""
    return int(value, 16)


@dataclass(frozen=True)
class EvmEventData:
    """Raw log as returned by `eth_getLogs`, with timestamp of its block"""

    # NOTE: Position in chain
    level: int
    transaction_index: int
    log_index: int
    block_hash: str
    transaction_hash: str
    timestamp: int

    # NOTE: Log itself
    address: str
    topics: tuple[str, ...]
    data: str
    removed: bool

    @classmethod
    def from_node_json(cls, log: dict[str, Any], timestamp: int) -> 'EvmEventData':
        return cls(
            level=_quantity(log['blockNumber']),
            transaction_index=_quantity(log['transactionIndex']),
            log_index=_quantity(log['logIndex']),
            block_hash=log['blockHash'],
            transaction_hash=log['transactionHash'],
            timestamp=timestamp,
            address=log['address'],
            topics=tuple(log['topics']),
            data=log['data'],
            # NOTE: Some nodes omit this field
            removed=log.get('removed', False),
        )


@dataclass(frozen=True)
class EvmHeadData:
    level: int
    hash: str
    timestamp: int

    @classmethod
    def from_json(cls, block: dict[str, Any]) -> 'EvmHeadData':
        return cls(
            level=_quantity(block['number']),
            hash=block['hash'],
            timestamp=_quantity(block['timestamp']),
        )


@dataclass(frozen=True)
class EvmEvent(Generic[PayloadT]):
    """Decoded log with typed payload"""

    data: EvmEventData
    payload: PayloadT
