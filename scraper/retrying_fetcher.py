"""HTTP fetcher with bounded retries for transient upstream failures."""
import logging
import time
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "faliactl-student-project/1.0 (https://github.com/jb381/faliactl)"


class FetchError(requests.RequestException):
    """Base class for errors raised by RetryingFetcher."""


class UnexpectedStatusError(FetchError):
    """Non-success status that is not worth retrying."""

    def __init__(self, status_code: int, url: str, body: str = ""):
        self.status_code = status_code
        self.url = url
        self.body = body
        super().__init__(f"unexpected status code {status_code} when fetching {url}")


class RetriesExhaustedError(FetchError):
    """Every attempt failed; wraps the last underlying failure."""

    def __init__(self, url: str, attempts: int, last_error: Exception):
        self.url = url
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"failed after {attempts} attempts fetching {url}: {last_error}")


class TransientStatusError(FetchError):
    """Gateway-style status from the upstream service (502/503/504)."""

    def __init__(self, status_code: int, url: str):
        self.status_code = status_code
        self.url = url
        super().__init__(f"transient status code: {status_code}")


class RetryingFetcher:
    """GET requests with linear backoff on timeouts and gateway errors."""

    TRANSIENT_STATUS_CODES = frozenset({502, 503, 504})

    def __init__(
        self,
        timeout: int = 30,
        max_retries: int = 3,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the fetcher.

        Args:
            timeout: Per-attempt HTTP timeout in seconds (default: 30)
            max_retries: Total number of attempts (default: 3)
            user_agent: User-Agent header sent with every request
            session: Optional requests session to reuse
        """
        self.timeout = timeout
        self.max_retries = max_retries
        self.session = session or requests.Session()
        self.session.headers['User-Agent'] = user_agent

    def fetch(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        """
        Fetch a URL, retrying transport failures and 502/503/504 responses.

        Attempt k waits k seconds before the next attempt.

        Args:
            url: Absolute URL to fetch
            params: Optional query parameters

        Returns:
            The successful response

        Raises:
            UnexpectedStatusError: On a non-success, non-transient status
            RetriesExhaustedError: If all attempts fail
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                logger.debug(f"GET {url} (attempt {attempt}/{self.max_retries})")
                response = self.session.get(url, params=params, timeout=self.timeout)
            except requests.RequestException as e:
                last_error = e
            else:
                if response.status_code in self.TRANSIENT_STATUS_CODES:
                    response.close()
                    last_error = TransientStatusError(response.status_code, url)
                elif not response.ok:
                    raise UnexpectedStatusError(
                        response.status_code, url, response.text[:500]
                    )
                else:
                    return response

            if attempt < self.max_retries:
                logger.warning(
                    f"Network congested, retrying in {attempt} seconds... "
                    f"(attempt {attempt}/{self.max_retries}): {last_error}"
                )
                time.sleep(attempt)

        logger.error(
            f"All {self.max_retries} attempts failed for {url}. Last error: {last_error}"
        )
        raise RetriesExhaustedError(url, self.max_retries, last_error)
