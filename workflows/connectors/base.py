"""
Connector Base

Abstract connector interface and the explicit connector registry.
"""

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..errors import ConnectorNotFoundError


@dataclass(frozen=True)
class ConnectorResult:
    """Outcome of a single connector invocation."""

    success: bool
    result: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, result: Any = None) -> "ConnectorResult":
        return cls(success=True, result=result)

    @classmethod
    def fail(cls, error: str) -> "ConnectorResult":
        return cls(success=False, error=error)


class Connector(ABC):
    """
    Abstract base class for external capability providers.

    A connector receives an operation name and fully resolved parameters and
    reports success or failure. Raising is treated the same as returning a
    failed result.
    """

    name: str = ""

    @abstractmethod
    async def invoke(self, operation: str, parameters: Dict[str, Any]) -> ConnectorResult:
        """
        Invoke an operation.

        Args:
            operation: Operation identifier
            parameters: Resolved step parameters

        Returns:
            ConnectorResult with the payload or an error message
        """
        pass

    @property
    def is_connected(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}')"


class ConnectorRegistry:
    """Name to connector mapping populated by explicit registration."""

    def __init__(self, connectors: Optional[List[Connector]] = None):
        self.logger = logging.getLogger(__name__)
        self._connectors: Dict[str, Connector] = {}
        self._lock = threading.RLock()
        for connector in connectors or []:
            self.register(connector)

    def register(self, connector: Connector, name: Optional[str] = None) -> None:
        """
        Register a connector.

        Args:
            connector: Connector instance
            name: Name to register under (default: connector.name)

        Raises:
            ValueError: If no name is available
        """
        name = name or connector.name
        if not name:
            raise ValueError("Connector must have a name")

        with self._lock:
            if name in self._connectors:
                self.logger.info(f"Replacing connector '{name}'")
            self._connectors[name] = connector
        self.logger.debug(f"Registered connector '{name}'")

    def unregister(self, name: str) -> bool:
        with self._lock:
            return self._connectors.pop(name, None) is not None

    def get(self, name: str) -> Connector:
        """
        Get a connector by name.

        Raises:
            ConnectorNotFoundError: If no connector is registered under name
        """
        with self._lock:
            connector = self._connectors.get(name)
        if connector is None:
            raise ConnectorNotFoundError(name)
        return connector

    def contains(self, name: str) -> bool:
        with self._lock:
            return name in self._connectors

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._connectors)

    def status(self) -> Dict[str, bool]:
        """Connection status of every registered connector."""
        with self._lock:
            connectors = dict(self._connectors)
        return {name: connector.is_connected for name, connector in sorted(connectors.items())}

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._connectors)
