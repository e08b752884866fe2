"""
Dependency Injection Container

Manages service lifecycles and dependency resolution.
"""

import logging
import threading
from typing import Any, Callable, Dict, Iterable, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


class DependencyNotFoundError(Exception):
    """Raised when attempting to resolve an unregistered dependency."""
    pass


class DependencyContainer:
    """
    Dependency injection container for managing service lifecycles.

    Services are registered as singletons; overrides win over them.
    Thread-safe for concurrent access.
    """

    def __init__(self):
        """Initialize the dependency container."""
        self._singletons: Dict[Type, Any] = {}
        self._overrides: Dict[Type, Any] = {}
        self._lock = threading.Lock()

        logger.debug("DependencyContainer initialized")

    def register_singleton(self, interface: Type[T], implementation: T) -> None:
        """
        Register a singleton service (single instance shared across all resolutions).

        Args:
            interface: The interface or class type to register
            implementation: The concrete instance to use

        Example:
            container.register_singleton(JobStore, job_store)
        """
        with self._lock:
            self._singletons[interface] = implementation
            logger.debug(f"Registered singleton: {interface.__name__}")

    def resolve(self, interface: Type[T]) -> T:
        """
        Resolve a registered service.

        Args:
            interface: The interface or class type to resolve

        Returns:
            The resolved service instance

        Raises:
            DependencyNotFoundError: If the interface is not registered
        """
        with self._lock:
            if interface in self._overrides:
                return self._overrides[interface]

            if interface not in self._singletons:
                raise DependencyNotFoundError(
                    f"No registration found for type: {interface.__name__}"
                )
            return self._singletons[interface]

    def override(self, interface: Type[T], implementation: T) -> None:
        """
        Override a registered service (primarily for testing).

        Args:
            interface: The interface or class type to override
            implementation: The mock or test instance to use
        """
        with self._lock:
            self._overrides[interface] = implementation
            logger.debug(f"Overridden: {interface.__name__}")

    def setup_job_listeners(self, job_store, listeners: Iterable[Callable]) -> None:
        """
        Subscribe process-wide listeners (logging, Socket.IO bridge) to the job store.

        A listener that fails to register is logged and skipped so that
        side channels never prevent the application from starting.

        Args:
            job_store: JobStore receiving the listeners
            listeners: Callables accepting a StreamJob snapshot
        """
        for listener in listeners:
            try:
                job_store.add_listener(listener)
                logger.debug(
                    f"Registered job listener: {getattr(listener, '__name__', type(listener).__name__)}"
                )
            except Exception as e:
                logger.error(f"Failed to register job listener {listener!r}: {e}")
                continue
