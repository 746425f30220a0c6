"""Centralized HTTP executor for Identity Admin SDK.

Sends a request once, with tracing, and turns transport failures into SDK
errors. Nothing is retried.
"""

from __future__ import annotations

from typing import Any

import httpx

from ..telemetry import get_logger, trace_operation
from .errors import ErrorFactory


class HTTPExecutor:
    """Synchronous single-attempt HTTP executor."""

    def __init__(self, client: httpx.Client) -> None:
        """Initialize HTTP executor.

        Args:
            client: HTTP client.
        """
        self._client = client
        self._logger = get_logger()

    @property
    def client(self) -> httpx.Client:
        """Underlying HTTP client."""
        return self._client

    def execute(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Execute HTTP request.

        Args:
            method: HTTP method.
            url: Request URL, absolute or relative to the client base URL.
            **kwargs: Additional request arguments.

        Returns:
            HTTP response, whatever its status.

        Raises:
            NetworkError: On connection failure.
            RequestTimeoutError: On timeout.
        """
        with trace_operation(
            "http_request",
            attributes={"http.method": method, "http.url": url},
        ) as span:
            try:
                response = self._client.request(method, url, **kwargs)
            except httpx.HTTPError as e:
                self._logger.warning(
                    "HTTP request failed",
                    method=method,
                    url=url,
                    error=str(e),
                )
                raise ErrorFactory.from_exception(e) from e

            span.set_attribute("http.status_code", response.status_code)
            return response

    def post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        access_token: str | None = None,
    ) -> httpx.Response:
        """POST a JSON body, optionally with a bearer token."""
        headers = {"Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return self.execute("POST", url, json=payload, headers=headers)

    def close(self) -> None:
        """Close the underlying client."""
        self._client.close()
