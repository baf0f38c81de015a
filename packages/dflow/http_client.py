"""HTTP client with retries, exponential backoff, and jitter."""

import time
import random
import logging
from typing import Any, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

logger = logging.getLogger(__name__)

MAX_BODY_SNIPPET = 800


class ApiError(Exception):
    """Raised when the API returns a non-2xx response."""

    def __init__(self, status: int, reason: str, url: str, body: str = ""):
        super().__init__(f"API {status} {reason}: {url}")
        self.status = status
        self.reason = reason
        self.url = url
        self.body = body[:MAX_BODY_SNIPPET]


class HttpClient:
    """HTTP client wrapper with automatic retries and exponential backoff."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 20.0,
        max_retries: int = 5,
        backoff_factor: float = 1.0,
        retry_statuses: tuple = (429, 500, 502, 503, 504),
        default_headers: Optional[dict] = None,
    ):
        """
        Initialize HTTP client.

        Args:
            base_url: Base URL for all requests
            timeout: Request timeout in seconds
            max_retries: Maximum number of retry attempts
            backoff_factor: Multiplier for exponential backoff
            retry_statuses: HTTP status codes that trigger a retry
            default_headers: Headers sent with every request (e.g. API key)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.retry_statuses = retry_statuses
        self.default_headers = dict(default_headers or {})

        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session that retries failed connections only.

        Status-based retries live in get(), so a failing endpoint is hit at
        most ``max_retries + 1`` times.
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=0,
            status=0,
            status_forcelist=(),
            backoff_factor=self.backoff_factor,
            allowed_methods=["GET"],
            raise_on_status=False,
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        return session

    def _add_jitter(self, delay: float) -> float:
        """Add random jitter to delay (0-50% of delay)."""
        jitter = random.uniform(0, delay * 0.5)
        return delay + jitter

    def _merge_headers(self, headers: Optional[dict]) -> dict:
        merged = dict(self.default_headers)
        merged.update(headers or {})
        return merged

    def _retry_delay(self, response: requests.Response, attempt: int) -> float:
        if response.status_code == 429:
            return self._add_jitter(int(response.headers.get("Retry-After", 5)))
        return self._add_jitter(self.backoff_factor * (2**attempt))

    def get(
        self,
        path: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> requests.Response:
        """
        Make a GET request, retrying rate limits, server errors and timeouts.

        When the retry budget runs out on a retryable status, the last
        response is returned as-is so callers still see its status code.

        Raises:
            requests.exceptions.RetryError: If every attempt timed out or the
                connection could not be established
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        attempts = self.max_retries + 1

        attempt = 0
        while True:
            last_attempt = attempt == attempts - 1
            try:
                response = self.session.get(
                    url,
                    params=params,
                    headers=self._merge_headers(headers),
                    timeout=self.timeout,
                )
            except requests.exceptions.Timeout as e:
                if last_attempt:
                    raise requests.exceptions.RetryError(
                        f"Max retries ({self.max_retries}) exceeded for {url}: {e}"
                    ) from e
                delay = self._add_jitter(self.backoff_factor * (2**attempt))
                logger.warning(
                    f"Request timeout. Waiting {delay:.2f}s before retry. "
                    f"Attempt {attempt + 1}/{attempts}"
                )
                time.sleep(delay)
                attempt += 1
                continue
            except requests.exceptions.ConnectionError as e:
                # The adapter has already retried the connection.
                raise requests.exceptions.RetryError(f"Connection failed for {url}: {e}") from e

            if response.status_code not in self.retry_statuses or last_attempt:
                return response

            delay = self._retry_delay(response, attempt)
            logger.warning(
                f"HTTP {response.status_code} from {url}. "
                f"Waiting {delay:.2f}s before retry. Attempt {attempt + 1}/{attempts}"
            )
            time.sleep(delay)
            attempt += 1

    def get_json(
        self,
        path: str,
        params: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> Any:
        """
        Make a GET request and return JSON response.

        Raises:
            ApiError: If the response status is not 2xx
            requests.RequestException: If the request fails
            ValueError: If response is not valid JSON
        """
        response = self.get(path, params=params, headers=headers)
        if not response.ok:
            raise ApiError(
                status=response.status_code,
                reason=response.reason or "",
                url=response.url,
                body=response.text or "",
            )
        return response.json()
