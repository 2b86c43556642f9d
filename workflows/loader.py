"""
Definition Loader

Scan a directory for workflow definition files and detect changes to it.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .definition import WorkflowDefinition
from .errors import DefinitionError

DEFAULT_PATTERNS = ("*.json", "*.yaml", "*.yml")

# (file name, modification time in ns, size in bytes)
FileSignature = Tuple[str, int, int]


@dataclass
class LoadReport:
    """Workflows loaded by one scan and the files that were rejected."""

    workflows: Dict[str, WorkflowDefinition] = field(default_factory=dict)
    sources: Dict[str, str] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)


class DefinitionLoader:
    """
    Loader for a directory of workflow definition files.

    Malformed files are logged and skipped so one bad file never hides the
    rest of the catalog.
    """

    def __init__(
        self,
        definitions_dir: Path,
        patterns: Optional[Sequence[str]] = None,
    ):
        """
        Initialize the loader.

        Args:
            definitions_dir: Directory to scan (not recursive)
            patterns: Glob patterns of definition files
        """
        self.logger = logging.getLogger(__name__)
        self.definitions_dir = Path(definitions_dir)
        self.patterns = tuple(patterns or DEFAULT_PATTERNS)

    def find_files(self) -> List[Path]:
        """Definition files in the directory, sorted by name."""
        if not self.definitions_dir.is_dir():
            return []

        files = set()
        for pattern in self.patterns:
            files.update(p for p in self.definitions_dir.glob(pattern) if p.is_file())
        return sorted(files)

    def load(self) -> LoadReport:
        """
        Parse every definition file.

        Returns:
            LoadReport with workflows keyed by id. When two files declare the
            same id the later file (by name) wins and a warning is logged.
        """
        report = LoadReport()

        if not self.definitions_dir.is_dir():
            self.logger.warning(
                f"Workflow definitions directory not found: {self.definitions_dir}"
            )
            return report

        for path in self.find_files():
            try:
                workflow = WorkflowDefinition.from_file(str(path))
            except (DefinitionError, ValueError, OSError) as e:
                self.logger.warning(f"Skipping workflow definition {path.name}: {e}")
                report.errors[str(path)] = str(e)
                continue

            if workflow.id in report.workflows:
                self.logger.warning(
                    f"Workflow '{workflow.id}' in {path.name} overrides "
                    f"{Path(report.sources[workflow.id]).name}"
                )
            report.workflows[workflow.id] = workflow
            report.sources[workflow.id] = str(path)

        self.logger.info(
            f"Loaded {len(report.workflows)} workflow(s) from {self.definitions_dir}"
        )
        return report

    def signature(self) -> Tuple[FileSignature, ...]:
        """
        Fingerprint of the directory contents.

        Raises:
            OSError: If a file disappears while being inspected
        """
        entries = []
        for path in self.find_files():
            stat = path.stat()
            entries.append((path.name, stat.st_mtime_ns, stat.st_size))
        return tuple(entries)
