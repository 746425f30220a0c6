"""Public key cache for ID token verification.

Thread-safe cache of the x509 certificates used to sign ID tokens. The cache
lifetime follows the ``Cache-Control`` header of the key endpoint, refreshing
ahead of expiry.
"""

from __future__ import annotations

import threading
import time
from typing import Callable

import httpx
from cryptography import x509
from cryptography.hazmat.primitives.asymmetric import rsa

from .config import DEFAULT_PUBLIC_KEYS_URL
from .core.errors import ErrorFactory
from .errors import PublicKeyFetchError
from .telemetry import get_logger, trace_operation


def parse_max_age(cache_control: str | None) -> int | None:
    """Extract ``max-age`` seconds from a Cache-Control header value."""
    if not cache_control:
        return None
    for directive in cache_control.split(","):
        name, _, value = directive.strip().partition("=")
        if name.lower() == "max-age":
            try:
                return int(value.strip().strip('"'))
            except ValueError:
                return None
    return None


def parse_certificates(data: object) -> dict[str, rsa.RSAPublicKey]:
    """Load a ``{kid: PEM certificate}`` map into RSA public keys.

    Raises:
        PublicKeyFetchError: If the map or any certificate is malformed.
    """
    if not isinstance(data, dict):
        raise PublicKeyFetchError("Public key response must be a JSON object")

    keys: dict[str, rsa.RSAPublicKey] = {}
    for kid, pem in data.items():
        if not isinstance(pem, str):
            raise PublicKeyFetchError(f"Certificate for key {kid!r} must be a string")
        try:
            certificate = x509.load_pem_x509_certificate(pem.encode("utf-8"))
        except ValueError as e:
            raise PublicKeyFetchError(
                f"Failed to parse certificate for key {kid!r}", cause=e
            ) from e
        public_key = certificate.public_key()
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise PublicKeyFetchError(f"Certificate for key {kid!r} is not an RSA key")
        keys[kid] = public_key
    return keys


class PublicKeyManager:
    """Thread-safe public key cache with Cache-Control driven lifetime."""

    def __init__(
        self,
        url: str = DEFAULT_PUBLIC_KEYS_URL,
        *,
        http_client: httpx.Client | None = None,
        timeout: float = 10.0,
        refresh_ahead_seconds: int = 300,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialize public key manager.

        Args:
            url: Endpoint serving the ``{kid: certificate}`` map.
            http_client: Optional client; a short-lived one is used otherwise.
            timeout: HTTP request timeout.
            refresh_ahead_seconds: Seconds before expiry to trigger refresh.
            clock: Time source returning epoch seconds.
        """
        self.url = url
        self.timeout = timeout
        self.refresh_ahead_seconds = refresh_ahead_seconds
        self._http_client = http_client
        self._clock = clock
        self._logger = get_logger()

        self._keys: dict[str, rsa.RSAPublicKey] = {}
        self._expires_at: float = 0
        self._lock = threading.RLock()

    def get_public_keys(self) -> dict[str, rsa.RSAPublicKey]:
        """Return the current keys, refreshing the cache when needed.

        Raises:
            PublicKeyFetchError: If a needed refresh fails.
        """
        with self._lock:
            if self._should_refresh():
                self._refresh()
            return dict(self._keys)

    def get_public_key(self, kid: str) -> rsa.RSAPublicKey | None:
        """Get key by key ID, or ``None`` if unknown."""
        return self.get_public_keys().get(kid)

    def _should_refresh(self) -> bool:
        if not self._keys:
            return True
        return self._clock() + self.refresh_ahead_seconds >= self._expires_at

    def _fetch(self) -> httpx.Response:
        if self._http_client is not None:
            return self._http_client.get(self.url)
        with httpx.Client(timeout=self.timeout) as client:
            return client.get(self.url)

    def _refresh(self) -> None:
        """Refresh keys from the server."""
        with trace_operation("public_keys_refresh", attributes={"http.url": self.url}):
            try:
                response = self._fetch()
                response.raise_for_status()
                data = response.json()
            except httpx.HTTPStatusError as e:
                status = e.response.status_code
                cause: Exception = e
                if status >= 500:
                    cause = ErrorFactory.server_error(e.response)
                raise PublicKeyFetchError(
                    f"Failed to fetch public keys: HTTP {status}",
                    status_code=status,
                    cause=cause,
                ) from cause
            except httpx.HTTPError as e:
                raise PublicKeyFetchError(f"Failed to fetch public keys: {e}", cause=e) from e
            except ValueError as e:
                raise PublicKeyFetchError("Public key response is not valid JSON", cause=e) from e

            keys = parse_certificates(data)

        max_age = parse_max_age(response.headers.get("Cache-Control"))
        lifetime = 0
        if max_age is not None:
            age = response.headers.get("Age", "0")
            lifetime = max(0, max_age - (int(age) if age.isdigit() else 0))

        self._keys = keys
        self._expires_at = self._clock() + lifetime
        self._logger.info(
            "Public keys refreshed",
            key_count=len(keys),
            max_age=max_age,
        )

    def invalidate(self) -> None:
        """Invalidate the cache, forcing refresh on next access."""
        with self._lock:
            self._keys = {}
            self._expires_at = 0

    @property
    def is_cached(self) -> bool:
        """Check if keys are currently cached and fresh."""
        with self._lock:
            return bool(self._keys) and not self._should_refresh()

    def time_until_refresh(self) -> float:
        """Seconds until the next refresh is due (0 if due now)."""
        with self._lock:
            if not self._keys:
                return 0
            remaining = self._expires_at - self.refresh_ahead_seconds - self._clock()
            return max(0, remaining)


_default_manager: PublicKeyManager | None = None
_default_manager_lock = threading.Lock()


def get_default_public_key_manager() -> PublicKeyManager:
    """Return the process-wide key manager, creating it on first use."""
    global _default_manager
    with _default_manager_lock:
        if _default_manager is None:
            _default_manager = PublicKeyManager()
        return _default_manager
