"""
Prometheus client module.
Runs instant and range queries against the Prometheus HTTP API and parses the
results into labeled series.
"""

import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import requests

from app.core.exceptions import QueryUnavailable
from app.models.costs import MetricKind, UsageSample
from app.models.metrics import LabeledSeries, Sample

logger = logging.getLogger(__name__)

# Per-container series; callers aggregate or sum them as needed.
SERIES_EXPRESSIONS = {
    MetricKind.CPU: 'rate(container_cpu_usage_seconds_total{%s}[5m])',
    MetricKind.MEMORY: 'container_memory_usage_bytes{%s}',
    MetricKind.NETWORK_RX: 'rate(container_network_receive_bytes_total{%s}[5m])',
    MetricKind.NETWORK_TX: 'rate(container_network_transmit_bytes_total{%s}[5m])',
}

# cAdvisor also reports a pod-level cgroup with an empty container label
CONTAINER_FILTER = 'container!=""'

# Prometheus refuses range queries that resolve to more points per series
MAX_RANGE_POINTS = 11000


def label_selector(*matchers: str, **labels: Optional[str]) -> str:
    """Build the inside of a PromQL selector, skipping empty label values"""
    parts = list(matchers)
    for name, value in labels.items():
        if value:
            escaped = value.replace('\\', '\\\\').replace('"', '\\"')
            parts.append(f'{name}="{escaped}"')
    return ",".join(parts)


def series_expression(kind: MetricKind, **scope: Optional[str]) -> str:
    """PromQL for the per-container series of a metric kind within a scope"""
    if kind in (MetricKind.CPU, MetricKind.MEMORY):
        selector = label_selector(CONTAINER_FILTER, **scope)
    else:
        selector = label_selector(**scope)
    return SERIES_EXPRESSIONS[kind] % selector


def usage_expression(kind: MetricKind, **scope: Optional[str]) -> str:
    return f"sum({series_expression(kind, **scope)})"


def step_seconds(step: timedelta) -> int:
    """Resolution sent to Prometheus, in whole seconds"""
    return max(int(step.total_seconds()), 1)


def range_points(duration: timedelta, step: timedelta) -> float:
    return duration.total_seconds() / step_seconds(step)


class PrometheusService:
    """Service for Prometheus queries"""

    def __init__(
        self,
        url: str,
        timeout: int = 30,
        username: Optional[str] = None,
        password: Optional[str] = None,
        bearer_token: Optional[str] = None
    ):
        self.url = url.rstrip('/')
        self.timeout = timeout
        self.headers = {'Accept': 'application/json'}
        self.auth = None
        if username and password:
            self.auth = (username, password)
            logger.info(f"Using basic authentication for Prometheus as {username}")
        elif bearer_token:
            self.headers['Authorization'] = f'Bearer {bearer_token}'
            logger.info("Using bearer token authentication for Prometheus")

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Issue a GET against the HTTP API and return the data section"""
        try:
            response = requests.get(
                f"{self.url}{path}",
                params=params,
                headers=self.headers,
                auth=self.auth,
                timeout=self.timeout
            )
            response.raise_for_status()
            payload = response.json()
        except requests.exceptions.RequestException as e:
            raise QueryUnavailable(f"Prometheus request failed: {e}") from e
        except ValueError as e:
            raise QueryUnavailable(f"Prometheus returned invalid JSON: {e}") from e

        if payload.get('status') != 'success':
            error_msg = payload.get('error', 'Unknown error')
            raise QueryUnavailable(f"Prometheus query failed: {error_msg}")

        return payload.get('data', {})

    @staticmethod
    def _parse_sample(pair) -> Optional[Sample]:
        timestamp, raw_value = pair
        value = float(raw_value)
        if not math.isfinite(value):
            return None
        return Sample(timestamp=float(timestamp), value=value)

    def _parse_series(self, data: Dict[str, Any]) -> List[LabeledSeries]:
        result_type = data.get('resultType')
        result = data.get('result', [])

        try:
            if result_type == 'scalar':
                sample = self._parse_sample(result)
                return [LabeledSeries(samples=[sample] if sample else [])]

            series = []
            for item in result:
                if 'values' in item:
                    pairs = item['values']
                elif 'value' in item:
                    pairs = [item['value']]
                else:
                    pairs = []
                samples = [s for s in (self._parse_sample(p) for p in pairs) if s is not None]
                series.append(LabeledSeries(labels=item.get('metric', {}), samples=samples))
            return series
        except (TypeError, ValueError) as e:
            raise QueryUnavailable(f"Malformed Prometheus result: {e}") from e

    def instant_query(self, query: str) -> List[LabeledSeries]:
        """Evaluate an expression at the current time"""
        data = self._get('/api/v1/query', {'query': query})
        series = self._parse_series(data)
        logger.debug(f"Query '{query[:80]}' returned {len(series)} series")
        return series

    def range_query(
        self,
        query: str,
        start: datetime,
        end: datetime,
        step: timedelta
    ) -> List[LabeledSeries]:
        """Evaluate an expression over [start, end] at the given resolution"""
        params = {
            'query': query,
            'start': int(start.timestamp()),
            'end': int(end.timestamp()),
            'step': f"{step_seconds(step)}s",
        }
        data = self._get('/api/v1/query_range', params)
        series = self._parse_series(data)
        logger.debug(
            f"Range query '{query[:80]}' returned {len(series)} series "
            f"({sum(len(s.samples) for s in series)} samples)"
        )
        return series

    def usage(self, kind: MetricKind, **scope: Optional[str]) -> UsageSample:
        """
        Current usage of one metric kind summed over a scope.

        Args:
            kind: Metric kind to query
            **scope: Label filters such as namespace, pod or node

        Returns:
            UsageSample: zero if Prometheus has no series for the scope

        Raises:
            QueryUnavailable: if the query itself fails
        """
        series = self.instant_query(usage_expression(kind, **scope))
        for item in series:
            if item.samples:
                sample = item.samples[0]
                return UsageSample.of(
                    kind,
                    sample.value,
                    as_of=datetime.fromtimestamp(sample.timestamp, tz=timezone.utc)
                )
        return UsageSample.zero(kind)

    def check_connection(self) -> bool:
        """
        Check if Prometheus is answering queries.

        Returns:
            bool: True if a trivial query succeeds, False otherwise
        """
        try:
            self.instant_query('vector(1)')
            logger.info(f"Successfully connected to Prometheus at {self.url}")
            return True
        except QueryUnavailable as e:
            logger.error(f"Failed to connect to Prometheus: {e}")
            return False
