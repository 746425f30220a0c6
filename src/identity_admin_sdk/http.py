"""HTTP client utilities for Identity Admin SDK.

Every request goes out exactly once; callers decide what an error status means.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .telemetry import SDK_NAME, SDK_VERSION

if TYPE_CHECKING:
    from .config import AppOptions

USER_AGENT = f"{SDK_NAME}/{SDK_VERSION} Python"


def create_timeout(options: AppOptions) -> httpx.Timeout:
    """Build the httpx timeout for the configured limits."""
    return httpx.Timeout(
        connect=options.connect_timeout,
        read=options.timeout,
        write=options.timeout,
        pool=options.timeout,
    )


def create_http_client(
    options: AppOptions,
    *,
    base_url: str | None = None,
    transport: httpx.BaseTransport | None = None,
) -> httpx.Client:
    """Create configured sync HTTP client.

    Args:
        options: App options.
        base_url: Base URL for relative requests, defaults to the
            user-management endpoint.
        transport: Optional transport, mainly for tests.

    Returns:
        Configured httpx.Client.
    """
    return httpx.Client(
        base_url=base_url or options.user_management_url,
        timeout=create_timeout(options),
        headers={
            "User-Agent": USER_AGENT,
            "Accept": "application/json",
        },
        follow_redirects=False,
        transport=transport,
    )
