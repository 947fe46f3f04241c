"""Bundled Governor contract ABI and event log decoding"""

from __future__ import annotations

import logging
from collections import deque
from functools import cache
from itertools import cycle
from pathlib import Path
from typing import Any
from typing import TypedDict

import orjson
from eth_abi.abi import decode as decode_abi
from eth_utils.address import to_normalized_address
from eth_utils.crypto import keccak
from eth_utils.hexadecimal import decode_hex
from pydantic import ValidationError

from governor_indexer.evm import EvmEvent
from governor_indexer.evm import EvmEventData
from governor_indexer.exceptions import FrameworkException
from governor_indexer.exceptions import InvalidDataError
from governor_indexer.types import PAYLOADS

GOVERNOR_ABI_PATH = Path(__file__).parent / 'governor.json'

_logger = logging.getLogger(__name__)


class EvmEventAbi(TypedDict):
    name: str
    topic0: str
    inputs: tuple[tuple[str, bool], ...]
    names: tuple[str, ...]
    topic_count: int


@cache
def get_contract_abi() -> list[dict[str, Any]]:
    """Raw ABI in the form accepted by `web3.eth.contract`"""
    return orjson.loads(GOVERNOR_ABI_PATH.read_bytes())  # type: ignore[no-any-return]


def topic0_from_abi(event: dict[str, Any]) -> str:
    if event.get('type') != 'event':
        raise FrameworkException(f'`{event["name"]}` is not an event')

    signature = f'{event["name"]}({",".join([i["type"] for i in event["inputs"]])})'
    return '0x' + keccak(text=signature).hex()


@cache
def get_event_abis() -> dict[str, EvmEventAbi]:
    """Event ABIs of the Governor contract keyed by topic0"""
    events: dict[str, EvmEventAbi] = {}
    for abi_item in get_contract_abi():
        if abi_item['type'] != 'event':
            continue

        inputs = tuple((i['type'], i['indexed']) for i in abi_item['inputs'])
        topic0 = topic0_from_abi(abi_item)
        events[topic0] = EvmEventAbi(
            name=abi_item['name'],
            topic0=topic0,
            inputs=inputs,
            names=tuple(i['name'] for i in abi_item['inputs']),
            topic_count=len([i for i in inputs if i[1]]),
        )
    return events


def get_event_abi(name: str) -> EvmEventAbi:
    for event_abi in get_event_abis().values():
        if event_abi['name'] == name:
            return event_abi
    raise FrameworkException(f'Event `{name}` not found in Governor ABI')


def decode_indexed_topics(indexed_inputs: tuple[str, ...], topics: tuple[str, ...]) -> tuple[Any, ...]:
    indexed_bytes = b''.join(decode_hex(topic) for topic in topics[1:])
    return decode_abi(indexed_inputs, indexed_bytes)


def decode_event_data(
    data: str,
    topics: tuple[str, ...],
    inputs: tuple[tuple[str, bool], ...],
) -> tuple[Any, ...]:
    """Decode event data from hex string"""
    # NOTE: Indexed and non-indexed inputs can go in arbitrary order. We need
    # NOTE: to decode them separately and then merge back.
    indexed_values = iter(decode_indexed_topics(tuple(n for n, i in inputs if i), topics))

    non_indexed_bytes = decode_hex(data)
    if non_indexed_bytes:
        non_indexed_values = iter(decode_abi(tuple(n for n, i in inputs if not i), non_indexed_bytes))
    else:
        # NOTE: Node truncates trailing zeros in event data
        non_indexed_values = cycle((0,))

    values: deque[Any] = deque()
    for _, indexed in inputs:
        if indexed:
            values.append(next(indexed_values))
        else:
            values.append(next(non_indexed_values))
    return tuple(values)


def normalize_value(type_: str, value: Any) -> Any:
    """Convert decoded ABI value to its JSON-friendly form"""
    if type_.endswith('[]'):
        return [normalize_value(type_[:-2], v) for v in value]
    if type_ == 'address':
        return to_normalized_address(value)
    if type_.startswith('bytes') and isinstance(value, bytes):
        return '0x' + value.hex()
    return value


def parse_event(event_abi: EvmEventAbi, data: EvmEventData) -> EvmEvent[Any]:
    """Decode a matched log into an event with a typed payload"""
    values = decode_event_data(
        data=data.data,
        topics=data.topics,
        inputs=event_abi['inputs'],
    )
    payload_json = {
        name: normalize_value(type_, value)
        for name, (type_, _), value in zip(event_abi['names'], event_abi['inputs'], values, strict=True)
    }

    type_ = PAYLOADS[event_abi['name']]
    try:
        payload = type_.model_validate(payload_json)
    except ValidationError as e:
        msg = f'Failed to parse: {e.errors()}'
        raise InvalidDataError(msg, type_, payload_json) from e

    return EvmEvent(data=data, payload=payload)
