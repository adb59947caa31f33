"""Realtime transports to the conversational model."""

from voice_receptionist.transport.base import (
    LiveServerMessage,
    RealtimeTransport,
    ToolCallRequest,
    ToolCallResult,
    TransportCallbacks,
    TransportConfig,
)
from voice_receptionist.transport.gemini_live import GeminiLiveTransport, build_setup_message

__all__ = [
    "GeminiLiveTransport",
    "LiveServerMessage",
    "RealtimeTransport",
    "ToolCallRequest",
    "ToolCallResult",
    "TransportCallbacks",
    "TransportConfig",
    "build_setup_message",
]
