"""
Tool registry - central catalog of every tool the live model may call.

Singleton pattern ensures only one registry exists across the application.
"""

from typing import Any, Dict, List, Optional, Type

import structlog

from voice_receptionist.tools.base import Tool, ToolCategory, ToolDefinition

logger = structlog.get_logger(__name__)


class ToolRegistry:
    """
    Singleton registry for all available tools.

    Manages tool registration, lookup, and function-declaration export.
    """

    _instance = None

    def __new__(cls):
        """Singleton pattern - only one instance exists."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._tools: Dict[str, Tool] = {}
            cls._instance._initialized = False
        return cls._instance

    def register(self, tool_class: Type[Tool]) -> None:
        """
        Register a tool class.

        Example:
            registry.register(VerifyPatientTool)
        """
        tool = tool_class()
        tool_name = tool.definition.name

        if tool_name in self._tools:
            logger.warning("Tool already registered, overwriting", tool=tool_name)

        self._tools[tool_name] = tool
        logger.debug("Registered tool", tool=tool_name, category=tool.definition.category.value)

    def get(self, name: str) -> Optional[Tool]:
        return self._tools.get(name)

    def get_all(self) -> List[Tool]:
        return list(self._tools.values())

    def get_by_category(self, category: ToolCategory) -> List[Tool]:
        return [
            tool for tool in self._tools.values()
            if tool.definition.category == category
        ]

    def get_definitions(self) -> List[ToolDefinition]:
        return [tool.definition for tool in self._tools.values()]

    def to_gemini_schema(self) -> List[Dict[str, Any]]:
        """
        Export all tools as a Gemini tools list.

        Returns:
            [{"functionDeclarations": [...]}] or [] when nothing is registered
        """
        if not self._tools:
            return []
        return [{
            "functionDeclarations": [
                tool.definition.to_gemini_schema()
                for tool in self._tools.values()
            ]
        }]

    def initialize_default_tools(self) -> None:
        """
        Register all built-in tools.

        Called once during startup; later calls are no-ops.
        """
        if self._initialized:
            logger.debug("Tools already initialized, skipping")
            return

        from voice_receptionist.tools.navigation import (
            NavigateAppTool,
            OpenActionModalTool,
            ViewPatientDetailsTool,
        )
        from voice_receptionist.tools.patients import (
            FindPatientInternalTool,
            GetMyVisitsTool,
            RegisterNewPatientTool,
            VerifyPatientTool,
        )
        from voice_receptionist.tools.clinical import (
            LogCallOutcomeTool,
            ReportAdverseEventTool,
            RescheduleVisitTool,
            ScheduleVisitTool,
        )
        from voice_receptionist.tools.study import GetStudyDetailsTool

        for tool_class in (
            NavigateAppTool,
            OpenActionModalTool,
            ViewPatientDetailsTool,
            VerifyPatientTool,
            RegisterNewPatientTool,
            GetMyVisitsTool,
            FindPatientInternalTool,
            ScheduleVisitTool,
            RescheduleVisitTool,
            LogCallOutcomeTool,
            ReportAdverseEventTool,
            GetStudyDetailsTool,
        ):
            self.register(tool_class)

        self._initialized = True
        logger.info("Initialized tools", count=len(self._tools))

    def list_tools(self) -> List[str]:
        return list(self._tools.keys())

    def clear(self) -> None:
        """
        Clear all registered tools.

        Mainly for testing purposes.
        """
        self._tools.clear()
        self._initialized = False


# Global singleton instance
tool_registry = ToolRegistry()
