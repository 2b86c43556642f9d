"""
Workflow Handler

Context object wiring settings, connectors, the workflow registry, the engine,
the tool adapter and the cached tool catalog together.
"""

import asyncio
import logging
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from config import SettingsManager
from mcp_core.types import Tool, ToolResult
from utils.cache import CacheReloadError, MultiLevelCacheManager
from .connectors import Connector, ConnectorRegistry, ConnectorResult, DataTransformConnector
from .definition import WorkflowDefinition
from .engine import Sleep, WorkflowEngine
from .errors import ConnectorNotFoundError
from .loader import DefinitionLoader
from .registry import TOOL_PREFIX, WorkflowRegistry
from .tool_adapter import WorkflowToolAdapter

CATALOG_CACHE_ID = "workflow_catalog"


class WorkflowHandler:
    """
    Entry point for listing and calling workflow tools.

    Construct one per application and pass it to whatever serves the tool
    surface. The catalog is rebuilt from the definitions directory according
    to the configured reload policy; workflows registered in code survive
    every reload.
    """

    def __init__(
        self,
        settings: Optional[SettingsManager] = None,
        connectors: Optional[List[Connector]] = None,
        loader: Optional[DefinitionLoader] = None,
        sleep: Sleep = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the handler.

        Args:
            settings: Loaded settings (default: built-in defaults)
            connectors: Connectors available to workflow steps
            loader: Definition loader (default: built from settings)
            sleep: Awaitable used for retry backoff
            clock: Monotonic clock for the catalog cache
        """
        self.logger = logging.getLogger(__name__)
        self.settings = settings or SettingsManager()

        if loader is None:
            source = self.settings.get_definition_source()
            loader = DefinitionLoader(Path(source.definitions_dir), source.patterns)
        self.loader = loader

        self.connectors = ConnectorRegistry(connectors)
        if DataTransformConnector.name not in self.connectors:
            self.connectors.register(DataTransformConnector())

        self.registry = WorkflowRegistry()
        self.engine = WorkflowEngine(
            self.connectors,
            self.registry,
            timeouts=self.settings.get_step_timeouts(),
            sleep=sleep,
        )
        self.adapter = WorkflowToolAdapter(self.registry, self.engine)

        self._static_workflows: Dict[str, WorkflowDefinition] = {}
        self._signature = None
        self.catalog: MultiLevelCacheManager[List[Tool]] = MultiLevelCacheManager(
            CATALOG_CACHE_ID,
            self._load_catalog,
            config=self.settings.get_cache_config(),
            change_detector=self._definitions_changed,
            clock=clock,
        )

    async def _load_catalog(self) -> List[Tool]:
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, self._build_catalog)

    def _build_catalog(self) -> List[Tool]:
        """Rescan definitions, refresh the registry and rebuild the tools."""
        try:
            signature = self.loader.signature()
        except OSError as e:
            self.logger.warning(f"Could not fingerprint workflow definitions: {e}")
            signature = None

        report = self.loader.load()
        workflows = dict(report.workflows)
        sources = dict(report.sources)
        for workflow_id, workflow in dict(self._static_workflows).items():
            workflows[workflow_id] = workflow
            sources.pop(workflow_id, None)

        self.registry.replace_all(workflows, sources)
        self._signature = signature

        tools = self.adapter.create_tools()
        self.logger.info(f"Generated {len(tools)} workflow tool(s)")
        return tools

    async def _definitions_changed(self) -> bool:
        loop = asyncio.get_event_loop()
        signature = await loop.run_in_executor(None, self.loader.signature)
        return signature != self._signature

    async def list_tools(self) -> List[Tool]:
        """
        Get the tool catalog, reloading it when the policy requires.

        Raises:
            CacheReloadError: If the catalog had to be rebuilt and failed
        """
        return list(await self.catalog.get())

    async def reload(self) -> List[Tool]:
        """Rebuild the catalog now."""
        return list(await self.catalog.force_reload())

    async def _ensure_loaded(self) -> None:
        if not self.catalog.has_cached_data:
            await self.catalog.get()

    async def call_tool(
        self,
        name: str,
        arguments: Optional[Dict[str, Any]] = None,
        session_id: Optional[str] = None,
    ) -> ToolResult:
        """
        Execute a workflow tool.

        Args:
            name: ``workflow_<id>`` or bare workflow id
            arguments: Invocation arguments
            session_id: Optional session identifier

        Returns:
            ToolResult from the adapter, or an error result
        """
        try:
            await self._ensure_loaded()
        except CacheReloadError as e:
            return ToolResult.error(f"Workflow catalog unavailable: {e}")
        return await self.adapter.execute_workflow(name, arguments, session_id=session_id)

    def is_workflow_tool(self, name: str) -> bool:
        return name.startswith(TOOL_PREFIX)

    async def has_workflow(self, name: str) -> bool:
        await self._ensure_loaded()
        return self.registry.contains(name)

    def register_workflow(self, workflow: WorkflowDefinition) -> None:
        """
        Register a workflow built in code.

        Raises:
            DefinitionError: If the workflow fails validation
        """
        workflow = WorkflowDefinition.parse(workflow.to_dict())
        self._static_workflows[workflow.id] = workflow
        self.registry.register(workflow)
        self.catalog.notify_changed()
        self.logger.info(f"Registered workflow '{workflow.id}'")

    def register_connector(self, connector: Connector, name: Optional[str] = None) -> None:
        self.connectors.register(connector, name=name)

    async def call_connector(
        self, name: str, operation: str, parameters: Optional[Dict[str, Any]] = None
    ) -> ConnectorResult:
        """
        Invoke a connector directly, outside of any workflow.

        Returns:
            ConnectorResult; a missing connector or raised error is a failure
        """
        try:
            connector = self.connectors.get(name)
        except ConnectorNotFoundError as e:
            return ConnectorResult.fail(str(e))

        try:
            return await connector.invoke(operation, dict(parameters or {}))
        except Exception as e:
            self.logger.error(f"Connector '{name}' call '{operation}' failed: {e}")
            return ConnectorResult.fail(str(e))

    def notify_definitions_changed(self) -> None:
        """Mark the catalog stale; the next listing rebuilds it."""
        self.catalog.notify_changed()

    def get_cache_stats(self) -> Dict[str, Any]:
        return self.catalog.get_stats().model_dump(mode="json")

    async def get_workflow_info(self) -> Dict[str, Any]:
        """
        Describe loaded workflows, connectors and the catalog cache.

        Returns:
            Dictionary suitable for JSON serialization
        """
        await self._ensure_loaded()
        workflows = self.registry.list()
        return {
            "workflowCount": len(workflows),
            "workflows": [
                {
                    "id": workflow.id,
                    "name": workflow.name,
                    "description": workflow.description,
                    "version": workflow.version,
                    "author": workflow.author,
                    "category": workflow.metadata.category,
                    "tags": list(workflow.metadata.tags),
                    "stepCount": len(workflow.steps),
                    "toolName": workflow.tool_name,
                    "source": self.registry.get_source(workflow.id),
                }
                for workflow in workflows
            ],
            "connectors": {
                name: {"isConnected": connected}
                for name, connected in self.connectors.status().items()
            },
            "definitionsDir": str(self.loader.definitions_dir),
            "cache": self.get_cache_stats(),
        }
