"""
Base HTTP client shared by the transcription and moment detection clients.
"""
import time
import logging
import requests
from typing import Any, Callable, Dict, Optional

from summarizer.core.exceptions import CollaboratorError, ParseError

logger = logging.getLogger(__name__)

# HTTP status -> classification preserved on CollaboratorError
STATUS_CLASSIFICATIONS = {
    401: ("authentication_failed", "Invalid API key"),
    403: ("authentication_failed", "Access denied"),
    413: ("file_too_large", "Request payload too large"),
    429: ("rate_limited", "Rate limit exceeded. Please try again later."),
}


class BaseAIClient:
    """Common request/retry handling for OpenAI-compatible endpoints."""

    def __init__(
        self,
        service_name: str,
        url: str,
        api_key: Optional[str],
        timeout: int = 600,
        max_retries: int = 0,
        retry_delay: float = 2.0,
    ):
        """
        Args:
            service_name: Name used in logs and errors
            url: Full endpoint URL
            api_key: Bearer token, None for unauthenticated endpoints
            timeout: Request timeout in seconds
            max_retries: Retries after timeouts, connection errors and 5xx
            retry_delay: Seconds between attempts
        """
        self.service_name = service_name
        self.url = url
        self.api_key = api_key
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    def _headers(self, json_body: bool = True) -> Dict[str, str]:
        headers = {}
        if json_body:
            headers["Content-Type"] = "application/json"
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _raise_for_status(self, response: requests.Response) -> None:
        if response.status_code == 200:
            return
        classification, hint = STATUS_CLASSIFICATIONS.get(response.status_code, (None, None))
        body = response.text[:200] if response.text else ""
        error_msg = f"HTTP {response.status_code}: {hint or body}"
        if hint and body:
            error_msg = f"{error_msg} ({body})"
        raise CollaboratorError(self.service_name, error_msg, classification=classification)

    def _is_retryable(self, error: CollaboratorError) -> bool:
        return error.classification in ("timeout", "connection_error", "server_error")

    def _send(self, send: Callable[[], requests.Response]) -> Dict[str, Any]:
        """
        Send a request built by `send` with retry logic.

        Raises:
            CollaboratorError: If the request fails after all retries
            ParseError: If a successful response body is not JSON
        """
        for attempt in range(self.max_retries + 1):
            try:
                start_time = time.time()
                logger.info(f"Calling {self.service_name} (attempt {attempt + 1}/{self.max_retries + 1})")

                try:
                    response = send()
                except requests.exceptions.Timeout:
                    raise CollaboratorError(
                        self.service_name, f"Request timeout after {self.timeout}s", classification="timeout"
                    )
                except requests.exceptions.ConnectionError as e:
                    raise CollaboratorError(
                        self.service_name, f"Connection error: {e}", classification="connection_error"
                    )

                duration = time.time() - start_time
                logger.info(
                    f"{self.service_name} API response: "
                    f"status={response.status_code}, duration={duration:.2f}s"
                )

                if response.status_code >= 500:
                    raise CollaboratorError(
                        self.service_name,
                        f"HTTP {response.status_code}: {response.text[:200]}",
                        classification="server_error",
                    )
                self._raise_for_status(response)

                try:
                    return response.json()
                except ValueError as e:
                    raise ParseError(self.service_name, f"Invalid JSON response: {e}")

            except CollaboratorError as e:
                logger.error(f"{self.service_name} error: {e.error}")
                if attempt < self.max_retries and self._is_retryable(e):
                    logger.info(f"Retrying in {self.retry_delay} seconds...")
                    time.sleep(self.retry_delay)
                    continue
                raise

        raise CollaboratorError(self.service_name, "Failed after all retries")

    def _post_json(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._send(
            lambda: requests.post(self.url, json=payload, headers=self._headers(), timeout=self.timeout)
        )
