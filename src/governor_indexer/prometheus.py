"""Prometheus metrics of the indexer.

Metrics are registered on import but updated only when `Metrics.enabled` is set, so tests and CLI
commands other than `run` don't pay for them.
"""

from prometheus_client import Counter
from prometheus_client import Gauge
from prometheus_client import Histogram

_level_indexed = Gauge(
    'governor_index_level',
    'Level of the last processed block',
    ['index'],
)
_head_level = Gauge(
    'governor_datasource_head_level',
    'Level of the last known head',
    ['datasource'],
)
_events_total = Counter(
    'governor_events_total',
    'Number of matched Governor events by kind',
    ['event'],
)
_proposal_states_updated = Counter(
    'governor_proposal_states_updated_total',
    'Number of proposal states corrected by the block reconciler',
    ['state'],
)
_calls_failed = Counter(
    'governor_calls_failed_total',
    'Number of failed authoritative contract calls',
    ['method'],
)
_rpc_requests = Counter(
    'governor_rpc_requests_total',
    'Number of JSON-RPC requests sent to the node',
    ['datasource', 'method'],
)
_time_in_level = Histogram(
    'governor_index_time_in_level_seconds',
    'Time spent processing a single level',
    ['index'],
)
_http_errors = Counter(
    'governor_http_errors_total',
    'Number of http errors',
    ['url', 'status'],
)
_http_errors_in_row = Gauge(
    'governor_http_errors_in_row',
    'Number of consecutive failed requests',
    ['url'],
)


class Metrics:
    enabled = False

    def __new__(cls) -> None:
        raise TypeError('Metrics is a singleton')

    @classmethod
    def set_level_indexed(cls, index: str, level: int) -> None:
        if not cls.enabled:
            return
        _level_indexed.labels(index=index).set(level)

    @classmethod
    def set_head_level(cls, datasource: str, level: int) -> None:
        if not cls.enabled:
            return
        _head_level.labels(datasource=datasource).set(level)

    @classmethod
    def inc_event(cls, event: str) -> None:
        if not cls.enabled:
            return
        _events_total.labels(event=event).inc()

    @classmethod
    def inc_proposal_state_updated(cls, state: str) -> None:
        if not cls.enabled:
            return
        _proposal_states_updated.labels(state=state).inc()

    @classmethod
    def inc_call_failed(cls, method: str) -> None:
        if not cls.enabled:
            return
        _calls_failed.labels(method=method).inc()

    @classmethod
    def inc_rpc_request(cls, datasource: str, method: str) -> None:
        if not cls.enabled:
            return
        _rpc_requests.labels(datasource=datasource, method=method).inc()

    @classmethod
    def observe_level_time(cls, index: str, seconds: float) -> None:
        if not cls.enabled:
            return
        _time_in_level.labels(index=index).observe(seconds)

    @classmethod
    def set_http_error(cls, url: str, status: int) -> None:
        if not cls.enabled:
            return
        _http_errors.labels(url=url, status=status).inc()

    @classmethod
    def set_http_errors_in_row(cls, url: str, errors_count: int) -> None:
        if not cls.enabled:
            return
        _http_errors_in_row.labels(url=url).set(errors_count)
