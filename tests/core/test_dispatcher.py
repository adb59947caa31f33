"""
Tests for batch tool dispatch.
"""

import pytest

from voice_receptionist.core.dispatcher import ToolDispatcher, call_outcome
from voice_receptionist.tools.adapters.gemini import GeminiToolAdapter
from voice_receptionist.tools.base import Tool, ToolCategory, ToolDefinition
from voice_receptionist.transport.base import ToolCallRequest, ToolCallResult


class BrokenTool(Tool):

    @property
    def definition(self) -> ToolDefinition:
        return ToolDefinition(name="broken", description="Raises", category=ToolCategory.STUDY)

    async def execute(self, parameters, context):
        raise KeyError("roster offline")


@pytest.fixture
def dispatcher(registry):
    registry.register(BrokenTool)
    return ToolDispatcher(GeminiToolAdapter(registry))


class TestCallOutcome:

    def test_outcomes(self):
        assert call_outcome(ToolCallResult("1", "t", {"success": True, "message": "ok"})) == "success"
        assert call_outcome(ToolCallResult("1", "t", {"success": False, "error": "no"})) == "failure"
        assert call_outcome(ToolCallResult("1", "t", {"success": False, "error": "x"}, faulted=True)) == "error"


class TestToolDispatcher:

    @pytest.mark.asyncio
    async def test_one_result_per_call_in_order(self, dispatcher, tool_context):
        calls = [
            ToolCallRequest("a", "navigate_app", {"view": "reports"}),
            ToolCallRequest("b", "broken", {}),
            ToolCallRequest("c", "no_such_tool", {}),
            ToolCallRequest("d", "get_study_details", {}),
        ]

        results = await dispatcher.run_batch(calls, tool_context)

        assert [r.id for r in results] == ["a", "b", "c", "d"]
        assert results[0].succeeded
        assert results[1].faulted
        assert "roster offline" in results[1].payload["error"]
        assert results[2].payload["error"] == "Unknown function: no_such_tool"
        assert results[3].succeeded

    @pytest.mark.asyncio
    async def test_dispatch_sends_single_batch(self, dispatcher, tool_context, open_transport):
        calls = [
            ToolCallRequest("a", "navigate_app", {"view": "reports"}),
            ToolCallRequest("b", "navigate_app", {"view": "study"}),
        ]

        await dispatcher.dispatch(calls, tool_context, open_transport)

        assert len(open_transport.sent_batches) == 1
        assert [r.id for r in open_transport.sent_batches[0]] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_empty_batch_sends_nothing(self, dispatcher, tool_context, open_transport):
        assert await dispatcher.dispatch([], tool_context, open_transport) == []
        assert open_transport.sent_batches == []

    @pytest.mark.asyncio
    async def test_results_discarded_when_closed(self, dispatcher, tool_context, store, closed_transport):
        transport = closed_transport

        results = await dispatcher.dispatch(
            [ToolCallRequest("a", "navigate_app", {"view": "reports"})], tool_context, transport,
        )

        assert len(results) == 1
        assert transport.sent_batches == []
        # The side effect itself already happened
        assert store.current_view == "reports"
