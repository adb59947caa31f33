"""
Gemini Live adapter for tool calling.

Translates between the unified tool catalog and Gemini's functionCalls /
functionResponses shapes, and runs one call with its failures contained.
"""

from typing import Any, Dict, List

import structlog

from voice_receptionist.tools.base import failure
from voice_receptionist.tools.context import ToolExecutionContext
from voice_receptionist.tools.registry import ToolRegistry
from voice_receptionist.transport.base import ToolCallRequest, ToolCallResult

logger = structlog.get_logger(__name__)


class GeminiToolAdapter:
    """
    Adapter for Gemini Live function calling.
    """

    def __init__(self, registry: ToolRegistry):
        self.registry = registry

    def get_tools_config(self) -> List[Dict[str, Any]]:
        """
        Tools list for the setup message.

        Example:
            [{"functionDeclarations": [{"name": "verify_patient", ...}, ...]}]
        """
        tools = self.registry.to_gemini_schema()
        logger.debug(
            "Generated Gemini tool declarations",
            count=len(tools[0]["functionDeclarations"]) if tools else 0,
        )
        return tools

    async def execute_tool(self, request: ToolCallRequest, context: ToolExecutionContext) -> ToolCallResult:
        """
        Execute one functionCall.

        Gemini format:
        {"id": "call_1", "name": "verify_patient", "args": {"name": "Alice"}}

        Never raises: unknown tools, invalid arguments and tool exceptions all
        become a failure payload for this call only.
        """
        tool = self.registry.get(request.name)
        if tool is None:
            logger.warning("Unknown tool requested", tool=request.name, tool_call_id=request.id)
            return ToolCallResult(request.id, request.name, failure(f"Unknown function: {request.name}"))

        arguments = request.arguments if isinstance(request.arguments, dict) else {}
        try:
            await tool.validate_parameters(arguments)
            payload = await tool.execute(arguments, context)
        except Exception as e:
            logger.error(
                "Tool execution failed",
                tool=request.name,
                tool_call_id=request.id,
                error=str(e),
                exc_info=True,
            )
            return ToolCallResult(request.id, request.name, failure(f"Tool execution failed: {e}"), faulted=True)

        return ToolCallResult(request.id, request.name, payload)
