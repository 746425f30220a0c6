"""App: a credential, its options and the thread pools its services share."""

from __future__ import annotations

import threading
from concurrent.futures import Executor
from typing import Any, Callable, Self, TypeVar

from .config import AppOptions
from .credentials import BaseCredential
from .executors import ScheduledExecutor, ThreadManager, ThreadPools, get_default_thread_manager
from .telemetry import get_logger

DEFAULT_APP_NAME = "[DEFAULT]"

S = TypeVar("S")


class AppDeletedError(RuntimeError):
    """App was used after :meth:`App.delete`."""


class App:
    """Holds the state shared by every service of one application.

    Thread pools are acquired from the thread manager on construction and
    released by :meth:`delete`.
    """

    def __init__(
        self,
        credential: BaseCredential,
        options: AppOptions | None = None,
        *,
        name: str = DEFAULT_APP_NAME,
        thread_manager: ThreadManager | None = None,
    ) -> None:
        if not isinstance(credential, BaseCredential):
            msg = f"credential must be a BaseCredential, got {type(credential).__name__}"
            raise TypeError(msg)
        if not isinstance(name, str) or not name:
            raise ValueError("App name must be a non-empty string")

        self._name = name
        self._credential = credential
        self._options = options or AppOptions()
        self._thread_manager = thread_manager or get_default_thread_manager()
        self._pools: ThreadPools = self._thread_manager.acquire(name)
        self._services: dict[str, Any] = {}
        self._lock = threading.RLock()
        self._deleted = False
        self._logger = get_logger()

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Any) -> None:
        self.delete()

    def _check_not_deleted(self) -> None:
        if self._deleted:
            msg = f"App {self._name!r} has been deleted"
            raise AppDeletedError(msg)

    @property
    def name(self) -> str:
        return self._name

    @property
    def credential(self) -> BaseCredential:
        with self._lock:
            self._check_not_deleted()
            return self._credential

    @property
    def options(self) -> AppOptions:
        with self._lock:
            self._check_not_deleted()
            return self._options

    @property
    def executor(self) -> Executor:
        """General-purpose executor for blocking work."""
        with self._lock:
            self._check_not_deleted()
            return self._pools.executor

    @property
    def scheduled_executor(self) -> ScheduledExecutor:
        with self._lock:
            self._check_not_deleted()
            return self._pools.scheduled_executor

    @property
    def project_id(self) -> str | None:
        """Project of the credential, if it carries one.

        For :class:`ApplicationDefault` this runs credential discovery on
        first access and may block on I/O.

        Raises:
            CredentialError: If application default credentials cannot be
                resolved.
        """
        return getattr(self.credential, "project_id", None)

    @property
    def is_deleted(self) -> bool:
        with self._lock:
            return self._deleted

    def get_service(self, key: str, factory: Callable[[App], S]) -> S:
        """Return the service stored under ``key``, creating it on first use."""
        with self._lock:
            self._check_not_deleted()
            service = self._services.get(key)
            if service is None:
                service = factory(self)
                self._services[key] = service
            return service

    def delete(self) -> None:
        """Close every service and release the thread pools.

        Deleting an already deleted app does nothing.
        """
        with self._lock:
            if self._deleted:
                return
            self._deleted = True
            services = list(self._services.values())
            self._services.clear()

        try:
            for service in services:
                close = getattr(service, "close", None)
                if callable(close):
                    close()
        finally:
            self._thread_manager.release(self._name)
        self._logger.debug("App deleted", app=self._name)

    def __repr__(self) -> str:
        return f"App(name={self._name!r}, deleted={self._deleted})"
