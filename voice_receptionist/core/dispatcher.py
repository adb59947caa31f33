"""
Batch tool dispatch.

Calls in one batch run one after another against the same session
context, so identity set by an earlier call is visible to later ones.
All results go back to the model in a single toolResponse.
"""

import time
from typing import List

import structlog
from prometheus_client import Counter

from voice_receptionist.tools.adapters.gemini import GeminiToolAdapter
from voice_receptionist.tools.context import ToolExecutionContext
from voice_receptionist.transport.base import RealtimeTransport, ToolCallRequest, ToolCallResult

logger = structlog.get_logger(__name__)

_TOOL_CALLS = Counter(
    "voice_receptionist_tool_calls",
    "Tool calls dispatched, by tool and outcome",
    labelnames=("tool", "outcome"),
)


def call_outcome(result: ToolCallResult) -> str:
    if result.faulted:
        return "error"
    return "success" if result.succeeded else "failure"


class ToolDispatcher:

    def __init__(self, adapter: GeminiToolAdapter):
        self.adapter = adapter

    async def run_batch(
        self,
        calls: List[ToolCallRequest],
        context: ToolExecutionContext,
    ) -> List[ToolCallResult]:
        """Execute every call; exactly one result per request, same id."""
        results: List[ToolCallResult] = []
        for call in calls:
            started = time.monotonic()
            result = await self.adapter.execute_tool(call, context)
            outcome = call_outcome(result)
            _TOOL_CALLS.labels(tool=call.name, outcome=outcome).inc()
            logger.info(
                "Tool call completed",
                session_id=context.session_id,
                tool=call.name,
                tool_call_id=call.id,
                outcome=outcome,
                duration_ms=round((time.monotonic() - started) * 1000, 1),
            )
            results.append(result)
        return results

    async def dispatch(
        self,
        calls: List[ToolCallRequest],
        context: ToolExecutionContext,
        transport: RealtimeTransport,
    ) -> List[ToolCallResult]:
        """Run a batch and send its results, unless the session closed meanwhile."""
        if not calls:
            return []
        results = await self.run_batch(calls, context)
        if not transport.is_open:
            logger.info(
                "Discarding tool results for closed session",
                session_id=context.session_id,
                count=len(results),
            )
            return results
        await transport.send_tool_results(results)
        return results
