"""Authoritative reads of the Governor contract.

Calls never raise: reverts, node errors and transport failures are returned as `CallResult.failed`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any
from typing import Generic
from typing import Protocol
from typing import TypeVar

from eth_abi.exceptions import DecodingError
from eth_utils.address import to_checksum_address
from web3.exceptions import Web3Exception

from governor_indexer.abi import get_contract_abi
from governor_indexer.exceptions import DatasourceError
from governor_indexer.models import ProposalState
from governor_indexer.prometheus import Metrics

if TYPE_CHECKING:
    from web3.contract import AsyncContract

    from governor_indexer.node import EvmNodeDatasource

T = TypeVar('T')

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallResult(Generic[T]):
    value: T | None = None
    error: str | None = None

    @classmethod
    def ok(cls, value: T) -> CallResult[T]:
        return cls(value=value)

    @classmethod
    def failed(cls, error: str) -> CallResult[T]:
        return cls(error=error)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None or self.value is None:
            raise ValueError(f'Call failed: {self.error}')
        return self.value


class GovernorContract(Protocol):
    async def quorum(self, level: int) -> CallResult[int]: ...

    async def state(self, proposal_id: int, level: int | None = None) -> CallResult[ProposalState]: ...


class Web3GovernorContract:
    """Governor binding performing `eth_call`s through the node datasource"""

    def __init__(self, datasource: EvmNodeDatasource, address: str) -> None:
        self._datasource = datasource
        self._address = to_checksum_address(address)
        self._contract: AsyncContract | None = None

    @property
    def contract(self) -> AsyncContract:
        if self._contract is None:
            self._contract = self._datasource.web3.eth.contract(
                address=self._address,
                abi=get_contract_abi(),
            )
        return self._contract

    async def quorum(self, level: int) -> CallResult[int]:
        # NOTE: Past timepoints only; `quorum(clock())` reverts, so read from the latest state
        result = await self._call('quorum', level, block_identifier='latest')
        if not result.is_ok:
            return CallResult.failed(result.error or '')
        return CallResult.ok(int(result.unwrap()))

    async def state(self, proposal_id: int, level: int | None = None) -> CallResult[ProposalState]:
        block_identifier = level if level is not None else 'latest'
        result = await self._call('state', proposal_id, block_identifier=block_identifier)
        if not result.is_ok:
            return CallResult.failed(result.error or '')
        return CallResult.ok(ProposalState.from_code(int(result.unwrap())))

    async def _call(self, method: str, *args: Any, block_identifier: int | str) -> CallResult[Any]:
        function = getattr(self.contract.functions, method)
        # NOTE: web3 raises bare `ValueError` on JSON-RPC errors other than reverts
        try:
            value = await function(*args).call(block_identifier=block_identifier)
        except (Web3Exception, ValueError, DecodingError, DatasourceError) as e:
            _logger.debug('`%s%s` call failed: %s', method, args, e)
            Metrics.inc_call_failed(method)
            return CallResult.failed(f'{type(e).__name__}: {e}')
        return CallResult.ok(value)
