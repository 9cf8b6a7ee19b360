"""
Tests for the Prometheus client
"""
from datetime import datetime, timedelta, timezone

import pytest
import requests
from unittest.mock import Mock, patch

from app.core.exceptions import QueryUnavailable
from app.models.costs import MetricKind
from app.services.prometheus_service import (
    MAX_RANGE_POINTS, PrometheusService, label_selector, range_points, series_expression,
    step_seconds, usage_expression
)


def ok_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def vector(*items):
    return {'status': 'success', 'data': {'resultType': 'vector', 'result': list(items)}}


class TestExpressions:

    def test_label_selector_skips_empty_values(self):
        assert label_selector(namespace="default", pod=None) == 'namespace="default"'
        assert label_selector() == ''

    def test_label_selector_escapes_quotes(self):
        assert label_selector(pod='we"ird') == 'pod="we\\"ird"'

    def test_cpu_expression_excludes_pod_cgroup(self):
        expr = series_expression(MetricKind.CPU, namespace="default", pod="web-1")
        assert expr == 'rate(container_cpu_usage_seconds_total{container!="",namespace="default",pod="web-1"}[5m])'

    def test_network_expression_has_no_container_filter(self):
        expr = series_expression(MetricKind.NETWORK_RX, namespace="default")
        assert expr == 'rate(container_network_receive_bytes_total{namespace="default"}[5m])'

    def test_usage_expression_sums(self):
        expr = usage_expression(MetricKind.MEMORY, node="node-a")
        assert expr == 'sum(container_memory_usage_bytes{container!="",node="node-a"})'

    def test_sub_second_steps_round_up_to_one_second(self):
        assert step_seconds(timedelta(milliseconds=1)) == 1
        assert step_seconds(timedelta(minutes=15)) == 900

    def test_range_points_against_limit(self):
        assert range_points(timedelta(hours=24), timedelta(hours=1)) == 24
        assert range_points(timedelta(hours=24), timedelta(milliseconds=1)) > MAX_RANGE_POINTS
        assert range_points(timedelta(hours=1), timedelta(seconds=1)) <= MAX_RANGE_POINTS


class TestPrometheusService:

    def test_initialization_with_basic_auth(self):
        service = PrometheusService("http://prometheus:9090/", username="user", password="pass")

        assert service.url == "http://prometheus:9090"
        assert service.auth == ("user", "pass")
        assert 'Authorization' not in service.headers

    def test_initialization_with_bearer_token(self):
        service = PrometheusService("http://prometheus:9090", bearer_token="token")

        assert service.auth is None
        assert service.headers['Authorization'] == "Bearer token"

    @patch('app.services.prometheus_service.requests.get')
    def test_instant_query_parses_vector(self, mock_get):
        mock_get.return_value = ok_response(vector(
            {'metric': {'pod': 'web-1'}, 'value': [1700000000.5, '0.25']},
            {'metric': {'pod': 'web-2'}, 'value': [1700000000.5, '0.75']},
        ))
        service = PrometheusService("http://prometheus:9090", timeout=5)

        series = service.instant_query('up')

        assert len(series) == 2
        assert series[0].labels == {'pod': 'web-1'}
        assert series[1].samples[0].value == 0.75
        assert series[1].samples[0].timestamp == 1700000000.5
        args, kwargs = mock_get.call_args
        assert args[0] == "http://prometheus:9090/api/v1/query"
        assert kwargs['params'] == {'query': 'up'}
        assert kwargs['timeout'] == 5

    @patch('app.services.prometheus_service.requests.get')
    def test_range_query_parses_matrix(self, mock_get):
        mock_get.return_value = ok_response({
            'status': 'success',
            'data': {
                'resultType': 'matrix',
                'result': [
                    {'metric': {'pod': 'web-1'}, 'values': [[1700000000, '0.5'], [1700003600, '0.6']]}
                ]
            }
        })
        service = PrometheusService("http://prometheus:9090")
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)

        series = service.range_query('cpu', start, start + timedelta(hours=2), timedelta(hours=1))

        assert [s.value for s in series[0].samples] == [0.5, 0.6]
        params = mock_get.call_args.kwargs['params']
        assert params['start'] == int(start.timestamp())
        assert params['end'] == int(start.timestamp()) + 7200
        assert params['step'] == '3600s'
        assert mock_get.call_args.args[0].endswith('/api/v1/query_range')

    @patch('app.services.prometheus_service.requests.get')
    def test_non_finite_samples_are_dropped(self, mock_get):
        mock_get.return_value = ok_response(vector(
            {'metric': {}, 'value': [1700000000, 'NaN']},
            {'metric': {}, 'value': [1700000000, '+Inf']},
        ))
        service = PrometheusService("http://prometheus:9090")

        series = service.instant_query('rate(x[5m])')

        assert [s.samples for s in series] == [[], []]

    @patch('app.services.prometheus_service.requests.get')
    def test_error_status_raises(self, mock_get):
        mock_get.return_value = ok_response({'status': 'error', 'error': 'parse error'})
        service = PrometheusService("http://prometheus:9090")

        with pytest.raises(QueryUnavailable, match="parse error"):
            service.instant_query('sum(')

    @patch('app.services.prometheus_service.requests.get')
    def test_transport_error_raises(self, mock_get):
        mock_get.side_effect = requests.exceptions.ConnectionError("refused")
        service = PrometheusService("http://prometheus:9090")

        with pytest.raises(QueryUnavailable):
            service.instant_query('up')

    @patch('app.services.prometheus_service.requests.get')
    def test_http_error_raises(self, mock_get):
        response = Mock()
        response.raise_for_status.side_effect = requests.exceptions.HTTPError("503 Server Error")
        mock_get.return_value = response
        service = PrometheusService("http://prometheus:9090")

        with pytest.raises(QueryUnavailable):
            service.range_query('up', datetime.now(timezone.utc), datetime.now(timezone.utc), timedelta(minutes=1))

    @patch('app.services.prometheus_service.requests.get')
    def test_invalid_json_raises(self, mock_get):
        response = Mock()
        response.raise_for_status.return_value = None
        response.json.side_effect = ValueError("Expecting value")
        mock_get.return_value = response
        service = PrometheusService("http://prometheus:9090")

        with pytest.raises(QueryUnavailable):
            service.instant_query('up')

    @patch('app.services.prometheus_service.requests.get')
    def test_usage_returns_summed_value(self, mock_get):
        mock_get.return_value = ok_response(vector({'metric': {}, 'value': [1700000000, '0.5']}))
        service = PrometheusService("http://prometheus:9090")

        sample = service.usage(MetricKind.CPU, namespace="default", pod="web-1")

        assert sample.metric_kind == MetricKind.CPU
        assert sample.value == 0.5
        assert sample.unit.value == "cores"
        assert sample.as_of == datetime.fromtimestamp(1700000000, tz=timezone.utc)
        query = mock_get.call_args.kwargs['params']['query']
        assert query.startswith('sum(rate(container_cpu_usage_seconds_total{')
        assert 'pod="web-1"' in query

    @patch('app.services.prometheus_service.requests.get')
    def test_usage_without_series_is_zero(self, mock_get):
        mock_get.return_value = ok_response(vector())
        service = PrometheusService("http://prometheus:9090")

        sample = service.usage(MetricKind.MEMORY, namespace="default", pod="gone")

        assert sample.value == 0.0

    @patch('app.services.prometheus_service.requests.get')
    def test_check_connection(self, mock_get):
        mock_get.return_value = ok_response({
            'status': 'success',
            'data': {'resultType': 'scalar', 'result': [1700000000, '1']}
        })
        service = PrometheusService("http://prometheus:9090")
        assert service.check_connection() is True

        mock_get.side_effect = requests.exceptions.Timeout("slow")
        assert service.check_connection() is False
