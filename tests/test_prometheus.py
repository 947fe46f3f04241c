from collections.abc import Iterator

import pytest
from prometheus_client import REGISTRY

from governor_indexer.prometheus import Metrics


@pytest.fixture
def metrics_enabled() -> Iterator[None]:
    Metrics.enabled = True
    try:
        yield
    finally:
        Metrics.enabled = False


def test_singleton() -> None:
    with pytest.raises(TypeError):
        Metrics()


def test_disabled() -> None:
    before = REGISTRY.get_sample_value('governor_events_total', {'event': 'disabled_event'})

    Metrics.inc_event('disabled_event')

    assert before is None
    assert REGISTRY.get_sample_value('governor_events_total', {'event': 'disabled_event'}) is None


def test_events(metrics_enabled: None) -> None:
    Metrics.inc_event('VoteCast')
    Metrics.inc_event('VoteCast')

    assert REGISTRY.get_sample_value('governor_events_total', {'event': 'VoteCast'}) == 2.0


def test_levels(metrics_enabled: None) -> None:
    Metrics.set_level_indexed('governor', 100)
    Metrics.set_head_level('node', 120)

    assert REGISTRY.get_sample_value('governor_index_level', {'index': 'governor'}) == 100.0
    assert REGISTRY.get_sample_value('governor_datasource_head_level', {'datasource': 'node'}) == 120.0


def test_rpc_requests(metrics_enabled: None) -> None:
    Metrics.inc_rpc_request('node', 'eth_getLogs')

    assert REGISTRY.get_sample_value(
        'governor_rpc_requests_total',
        {'datasource': 'node', 'method': 'eth_getLogs'},
    ) == 1.0
