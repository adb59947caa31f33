"""
Receptionist tool catalog.

Tools are declared once (base.ToolDefinition), collected in the registry
and executed against a per-session ToolExecutionContext.
"""

from voice_receptionist.tools.base import Tool, ToolCategory, ToolDefinition, ToolParameter, failure, success
from voice_receptionist.tools.context import ConversationMode, ToolExecutionContext
from voice_receptionist.tools.registry import ToolRegistry, tool_registry

__all__ = [
    "ConversationMode",
    "Tool",
    "ToolCategory",
    "ToolDefinition",
    "ToolExecutionContext",
    "ToolParameter",
    "ToolRegistry",
    "failure",
    "success",
    "tool_registry",
]
