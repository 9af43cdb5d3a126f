"""Unit tests for RetryingFetcher."""
from unittest.mock import call, patch

import pytest
import responses
from requests.exceptions import ConnectionError, RequestException, Timeout

from scraper.retrying_fetcher import (
    DEFAULT_USER_AGENT,
    RetriesExhaustedError,
    RetryingFetcher,
    TransientStatusError,
    UnexpectedStatusError,
)

URL = "https://api.example.com/resource"


@pytest.fixture
def mock_sleep():
    """Skip real backoff delays."""
    with patch('scraper.retrying_fetcher.time.sleep') as sleep:
        yield sleep


class TestRetryingFetcher:
    """Test cases for RetryingFetcher class."""

    @responses.activate
    def test_fetch_success(self, mock_sleep):
        """Test a successful first attempt returns the response."""
        responses.add(responses.GET, URL, json={'ok': True}, status=200)

        response = RetryingFetcher().fetch(URL)

        assert response.json() == {'ok': True}
        assert len(responses.calls) == 1
        mock_sleep.assert_not_called()

    @responses.activate
    def test_sends_user_agent(self, mock_sleep):
        """Test every request identifies the project."""
        responses.add(responses.GET, URL, body="ok", status=200)

        RetryingFetcher().fetch(URL)

        assert responses.calls[0].request.headers['User-Agent'] == DEFAULT_USER_AGENT

    @responses.activate
    def test_passes_query_params(self, mock_sleep):
        """Test query parameters are encoded into the URL."""
        responses.add(responses.GET, URL, body="ok", status=200)

        RetryingFetcher().fetch(URL, params={'query': 'Am Exer', 'results': 5})

        assert 'query=Am+Exer' in responses.calls[0].request.url
        assert 'results=5' in responses.calls[0].request.url

    @responses.activate
    def test_retry_succeeds_on_third_attempt(self, mock_sleep):
        """Test two 503 responses followed by a 200 succeed."""
        responses.add(responses.GET, URL, body="Service Unavailable", status=503)
        responses.add(responses.GET, URL, body="Service Unavailable", status=503)
        responses.add(responses.GET, URL, json={'success': True}, status=200)

        response = RetryingFetcher().fetch(URL)

        assert response.status_code == 200
        assert len(responses.calls) == 3
        assert mock_sleep.call_args_list == [call(1), call(2)]

    @responses.activate
    def test_all_retries_fail_with_bad_gateway(self, mock_sleep):
        """Test three 502 responses exhaust the retries."""
        for _ in range(3):
            responses.add(responses.GET, URL, body="Bad Gateway", status=502)

        with pytest.raises(RetriesExhaustedError) as exc_info:
            RetryingFetcher().fetch(URL)

        assert len(responses.calls) == 3
        assert exc_info.value.attempts == 3
        assert isinstance(exc_info.value.last_error, TransientStatusError)
        assert exc_info.value.last_error.status_code == 502
        # Linear backoff between attempts only
        assert mock_sleep.call_args_list == [call(1), call(2)]
        assert sum(c.args[0] for c in mock_sleep.call_args_list) >= 3

    @responses.activate
    def test_exhausted_error_is_request_exception(self, mock_sleep):
        """Test exhausted retries can be caught as a requests exception."""
        for _ in range(3):
            responses.add(responses.GET, URL, status=504)

        with pytest.raises(RequestException):
            RetryingFetcher().fetch(URL)

    @responses.activate
    def test_timeout_is_retried(self, mock_sleep):
        """Test timeouts are retried and wrapped after the last attempt."""
        for _ in range(3):
            responses.add(responses.GET, URL, body=Timeout("Request timed out"))

        with pytest.raises(RetriesExhaustedError) as exc_info:
            RetryingFetcher().fetch(URL)

        assert len(responses.calls) == 3
        assert isinstance(exc_info.value.last_error, Timeout)

    @responses.activate
    def test_connection_error_then_success(self, mock_sleep):
        """Test a connection error is followed by a successful retry."""
        responses.add(responses.GET, URL, body=ConnectionError("connection reset"))
        responses.add(responses.GET, URL, body="ok", status=200)

        response = RetryingFetcher().fetch(URL)

        assert response.text == "ok"
        assert len(responses.calls) == 2
        mock_sleep.assert_called_once_with(1)

    @responses.activate
    def test_non_transient_status_not_retried(self, mock_sleep):
        """Test a 404 fails immediately without retrying."""
        responses.add(responses.GET, URL, body="Not Found", status=404)

        with pytest.raises(UnexpectedStatusError) as exc_info:
            RetryingFetcher().fetch(URL)

        assert exc_info.value.status_code == 404
        assert exc_info.value.body == "Not Found"
        assert len(responses.calls) == 1
        mock_sleep.assert_not_called()

    @responses.activate
    def test_server_error_500_not_retried(self, mock_sleep):
        """Test a 500 is treated as a permanent failure."""
        responses.add(responses.GET, URL, body="Server Error", status=500)

        with pytest.raises(UnexpectedStatusError):
            RetryingFetcher().fetch(URL)

        assert len(responses.calls) == 1

    @responses.activate
    def test_retry_logs_warning(self, mock_sleep, caplog):
        """Test each retry surfaces a warning."""
        responses.add(responses.GET, URL, status=503)
        responses.add(responses.GET, URL, body="ok", status=200)

        with caplog.at_level('WARNING', logger='scraper.retrying_fetcher'):
            RetryingFetcher().fetch(URL)

        assert any('retrying' in record.getMessage() for record in caplog.records)
