from unittest.mock import MagicMock, patch

import requests

from controller.topology_rest import RegionClient


def response(status_code, data=None):
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = data
    return resp


@patch('controller.topology_rest.requests.get')
def test_fetch_region_returns_snapshot(mock_get):
    mock_get.return_value = response(200, {'id': 'root'})
    client = RegionClient('http://controller:8181/topology/', timeout=2)

    assert client.fetch_region() == {'id': 'root'}
    mock_get.assert_called_once_with(
        'http://controller:8181/topology/region', params={'force': 'true'}, timeout=2)


@patch('controller.topology_rest.requests.get')
def test_no_content_means_no_region(mock_get):
    mock_get.return_value = response(204)

    assert RegionClient('http://controller').fetch_region() is None


@patch('controller.topology_rest.requests.get')
def test_error_status_means_no_region(mock_get):
    mock_get.return_value = response(500)

    assert RegionClient('http://controller').fetch_region() is None


@patch('controller.topology_rest.requests.get')
def test_connection_error_is_reported_as_no_region(mock_get):
    mock_get.side_effect = requests.exceptions.ConnectionError('refused')

    assert RegionClient('http://controller').fetch_region() is None


@patch('controller.topology_rest.requests.get')
def test_invalid_json_is_reported_as_no_region(mock_get):
    resp = response(200)
    resp.json.side_effect = ValueError('no json')
    mock_get.return_value = resp

    assert RegionClient('http://controller').fetch_region(force=False) is None
    assert mock_get.call_args.kwargs['params'] == {'force': 'false'}
