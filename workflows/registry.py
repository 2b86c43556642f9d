"""
Workflow Registry

Thread-safe store of registered workflow definitions.
"""

import logging
import threading
from typing import Dict, List, Optional

from .definition import WorkflowDefinition

TOOL_PREFIX = "workflow_"


class WorkflowRegistry:
    """
    Registry of workflow definitions keyed by id.

    Lookups accept either the bare id or the ``workflow_<id>`` tool name.
    """

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._workflows: Dict[str, WorkflowDefinition] = {}
        self._sources: Dict[str, str] = {}
        self._lock = threading.RLock()

    def register(self, workflow: WorkflowDefinition, source: Optional[str] = None) -> None:
        """
        Register a workflow, replacing any previous one with the same id.

        Args:
            workflow: Validated workflow definition
            source: Where the definition was loaded from

        Raises:
            ValueError: If the workflow has no id
        """
        if not workflow.id:
            raise ValueError("Cannot register a workflow without an id")

        with self._lock:
            if workflow.id in self._workflows:
                self.logger.debug(f"Replacing workflow '{workflow.id}'")
            self._workflows[workflow.id] = workflow
            if source:
                self._sources[workflow.id] = source
            else:
                self._sources.pop(workflow.id, None)

    def _resolve_id(self, name: str) -> Optional[str]:
        if name in self._workflows:
            return name
        if name.startswith(TOOL_PREFIX) and name[len(TOOL_PREFIX):] in self._workflows:
            return name[len(TOOL_PREFIX):]
        return None

    def get(self, name: str) -> Optional[WorkflowDefinition]:
        """Get a workflow by id or tool name."""
        with self._lock:
            workflow_id = self._resolve_id(name)
            return self._workflows.get(workflow_id) if workflow_id else None

    def get_source(self, name: str) -> Optional[str]:
        with self._lock:
            workflow_id = self._resolve_id(name)
            return self._sources.get(workflow_id) if workflow_id else None

    def contains(self, name: str) -> bool:
        with self._lock:
            return self._resolve_id(name) is not None

    def unregister(self, name: str) -> bool:
        """Remove a workflow; returns False if it was not registered."""
        with self._lock:
            workflow_id = self._resolve_id(name)
            if workflow_id is None:
                return False
            del self._workflows[workflow_id]
            self._sources.pop(workflow_id, None)
        self.logger.debug(f"Unregistered workflow '{workflow_id}'")
        return True

    def list(self) -> List[WorkflowDefinition]:
        """All registered workflows, ordered by id."""
        with self._lock:
            return [self._workflows[key] for key in sorted(self._workflows)]

    def replace_all(self, workflows: Dict[str, WorkflowDefinition], sources: Optional[Dict[str, str]] = None) -> None:
        """Atomically swap the whole registry contents."""
        with self._lock:
            self._workflows = dict(workflows)
            self._sources = dict(sources or {})

    def __contains__(self, name: str) -> bool:
        return self.contains(name)

    def __len__(self) -> int:
        with self._lock:
            return len(self._workflows)
