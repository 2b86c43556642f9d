from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class DefinitionSourceInfo(BaseModel):
    """Model describing where workflow definitions are read from"""

    definitions_dir: Optional[str] = None
    patterns: List[str] = Field(default_factory=lambda: ["*.json", "*.yaml", "*.yml"])


class StepTimeouts(BaseModel):
    """Model holding the step timeout defaults"""

    default_seconds: float = 120.0
    max_seconds: float = 600.0

    def effective(self, requested: Optional[float]) -> float:
        """Return the timeout for a step, capped by the ceiling"""
        timeout = requested if requested and requested > 0 else self.default_seconds
        return min(timeout, self.max_seconds)


class ConfigurationUpdate(BaseModel):
    """Result of an update_configuration call"""

    success: bool
    updated_settings: List[str] = Field(default_factory=list)
    ignored_settings: List[str] = Field(default_factory=list)
    message: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
