"""
Base classes for the receptionist tool catalog.

Every tool the live model may call is declared once here, in a
provider-neutral form, and exported to the model's function-declaration
format by the registry.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class ToolCategory(Enum):
    """Category of tool, used for grouping and metrics."""
    NAVIGATION = "navigation"  # Drives the site application's UI
    PATIENT = "patient"        # Identity and roster operations
    CLINICAL = "clinical"      # Visits, adverse events, alerts
    STUDY = "study"            # Read-only study information


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""
    name: str
    type: str  # "string", "integer", "boolean", "number"
    description: Optional[str] = None
    required: bool = False
    enum: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"type": self.type.upper()}
        if self.description:
            result["description"] = self.description
        if self.enum:
            result["enum"] = list(self.enum)
        return result


@dataclass(frozen=True)
class ToolDefinition:
    """
    Immutable tool declaration.

    Shared by both conversation modes; the system instruction, not the
    catalog, steers the model toward the right subset.
    """
    name: str
    description: str
    category: ToolCategory
    parameters: List[ToolParameter] = field(default_factory=list)

    def to_gemini_schema(self) -> Dict[str, Any]:
        """
        Convert to a Gemini function declaration.

        Gemini format:
        {
            "name": "tool_name",
            "description": "Tool description",
            "parameters": {
                "type": "OBJECT",
                "properties": {...},
                "required": [...]
            }
        }
        """
        parameters: Dict[str, Any] = {
            "type": "OBJECT",
            "properties": {p.name: p.to_dict() for p in self.parameters},
        }
        required = [p.name for p in self.parameters if p.required]
        if required:
            parameters["required"] = required
        return {
            "name": self.name,
            "description": self.description,
            "parameters": parameters,
        }


def success(message: str, **fields: Any) -> Dict[str, Any]:
    """Successful result payload."""
    return {"success": True, "message": message, **fields}


def failure(message: str, **fields: Any) -> Dict[str, Any]:
    """Business failure payload. The model narrates it; nothing is raised."""
    return {"success": False, "error": message, **fields}


def parse_iso_date(value: Any) -> Optional[str]:
    """Return ``value`` normalised to YYYY-MM-DD, or None if it is not a date."""
    try:
        return date.fromisoformat(str(value).strip()[:10]).isoformat()
    except ValueError:
        return None


class Tool(ABC):
    """
    Abstract base class for all tools.

    All tools must inherit from this class and implement:
    - definition property: Returns ToolDefinition with metadata
    - execute method: Performs the action against the session context
    """

    @property
    @abstractmethod
    def definition(self) -> ToolDefinition:
        """Return tool definition with metadata."""
        pass

    @abstractmethod
    async def execute(
        self,
        parameters: Dict[str, Any],
        context: 'ToolExecutionContext'
    ) -> Dict[str, Any]:
        """
        Execute the tool with given parameters and context.

        Args:
            parameters: Arguments from the model
            context: Session context with collaborators and identity state

        Returns:
            Result dictionary with:
            - success: bool
            - message: Human-readable confirmation the model speaks from
            - error: present on failures
            - Additional tool-specific fields

        Raises:
            ValueError: If parameters are invalid
        """
        pass

    async def validate_parameters(self, parameters: Dict[str, Any]) -> bool:
        """
        Validate parameters before execution.

        Raises:
            ValueError: If validation fails with specific error message
        """
        for param in self.definition.parameters:
            value = parameters.get(param.name)
            if param.required and (value is None or (isinstance(value, str) and not value.strip())):
                raise ValueError(f"Missing required parameter: {param.name}")

            if param.enum and value is not None and value not in param.enum:
                raise ValueError(
                    f"Invalid value for {param.name}. "
                    f"Must be one of: {', '.join(param.enum)}"
                )

        return True
