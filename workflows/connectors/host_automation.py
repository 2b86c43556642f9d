"""
Host Automation Connector

Forwards operations to a host application's automation client.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from .base import Connector, ConnectorResult

HostClient = Callable[[str, Dict[str, Any]], Awaitable[Any]]


class HostAutomationConnector(Connector):
    """
    Connector for a live host application.

    The client is an async callable ``client(operation, parameters)``. Its
    return value becomes the step result; a returned ConnectorResult is
    passed through as is, and a raised exception fails the attempt.
    """

    name = "host"

    def __init__(
        self,
        client: HostClient,
        name: Optional[str] = None,
        connection_check: Optional[Callable[[], bool]] = None,
    ):
        """
        Initialize the connector.

        Args:
            client: Async callable performing the operation on the host
            name: Connector name (default: "host")
            connection_check: Optional callable reporting connection state
        """
        self.logger = logging.getLogger(__name__)
        self.client = client
        if name:
            self.name = name
        self._connection_check = connection_check

    @property
    def is_connected(self) -> bool:
        if self._connection_check is None:
            return True
        try:
            return bool(self._connection_check())
        except Exception as e:
            self.logger.warning(f"Connection check for '{self.name}' failed: {e}")
            return False

    async def invoke(self, operation: str, parameters: Dict[str, Any]) -> ConnectorResult:
        if not operation:
            return ConnectorResult.fail("Operation is required")

        self.logger.debug(f"Calling host operation '{operation}' via '{self.name}'")
        result = self.client(operation, parameters)
        if inspect.isawaitable(result):
            result = await result

        if isinstance(result, ConnectorResult):
            return result
        return ConnectorResult.ok(result)
