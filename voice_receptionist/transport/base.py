"""
Provider-agnostic realtime transport interface.

A transport owns exactly one bidirectional streaming connection to the
conversational model. It knows the wire format but nothing about tools or
sessions: inbound traffic is parsed into `LiveServerMessage` objects and
handed to callbacks; outbound traffic is audio frames and batches of tool
results.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional

from voice_receptionist.audio.codec import AudioFrame


@dataclass
class ToolCallRequest:
    """One function call requested by the model."""
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolCallResult:
    """Result correlated to a `ToolCallRequest` by id."""
    id: str
    name: str
    payload: Dict[str, Any]
    faulted: bool = False  # execution raised; payload is the converted failure

    @property
    def succeeded(self) -> bool:
        return bool(self.payload.get("success")) and "error" not in self.payload

    def to_function_response(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "response": {"result": self.payload}}


@dataclass
class TransportConfig:
    """Per-session connection parameters."""
    model: str
    voice: str
    system_instruction: str
    tools: List[Dict[str, Any]] = field(default_factory=list)
    response_modalities: List[str] = field(default_factory=lambda: ["AUDIO"])
    enable_input_transcription: bool = False
    enable_output_transcription: bool = False


@dataclass
class LiveServerMessage:
    """One inbound message. Audio and tool calls may both be present."""
    setup_complete: bool = False
    audio: List[str] = field(default_factory=list)  # base64 PCM16 payloads, in order
    text: List[str] = field(default_factory=list)
    tool_calls: List[ToolCallRequest] = field(default_factory=list)
    cancelled_call_ids: List[str] = field(default_factory=list)
    turn_complete: bool = False
    interrupted: bool = False
    input_transcription: Optional[str] = None
    output_transcription: Optional[str] = None
    go_away: Optional[Dict[str, Any]] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def has_audio(self) -> bool:
        return bool(self.audio)

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LiveServerMessage":
        msg = cls(raw=data)
        msg.setup_complete = "setupComplete" in data

        content = data.get("serverContent") or {}
        for part in (content.get("modelTurn") or {}).get("parts") or []:
            inline = part.get("inlineData")
            if inline and str(inline.get("mimeType", "audio/pcm")).startswith("audio/pcm") and inline.get("data"):
                msg.audio.append(inline["data"])
            if part.get("text"):
                msg.text.append(part["text"])
        msg.turn_complete = bool(content.get("turnComplete"))
        msg.interrupted = bool(content.get("interrupted"))
        msg.input_transcription = (content.get("inputTranscription") or {}).get("text") or None
        msg.output_transcription = (content.get("outputTranscription") or {}).get("text") or None

        for call in (data.get("toolCall") or {}).get("functionCalls") or []:
            msg.tool_calls.append(
                ToolCallRequest(
                    id=str(call.get("id", "")),
                    name=call.get("name", ""),
                    arguments=call.get("args") or {},
                )
            )
        msg.cancelled_call_ids = list((data.get("toolCallCancellation") or {}).get("ids") or [])
        if "goAway" in data:
            msg.go_away = data.get("goAway") or {}
        return msg


@dataclass
class TransportCallbacks:
    """Event surface of a transport. All callbacks are coroutines."""
    on_open: Callable[[], Awaitable[None]]
    on_message: Callable[[LiveServerMessage], Awaitable[None]]
    on_error: Callable[[Exception], Awaitable[None]]
    on_close: Callable[[Optional[int], str], Awaitable[None]]


class RealtimeTransport(ABC):
    """
    Abstract bidirectional transport.

    Lifecycle:
    1. connect(config, callbacks) -> connection established, setup sent;
       raises TransportConnectError if the connection cannot be made
    2. callbacks.on_open once the remote side acknowledges the setup
    3. send_audio(frame) / send_tool_results(batch) while open
    4. close() at any time, including while connect() is still pending
    """

    @property
    @abstractmethod
    def is_open(self) -> bool:
        pass

    @abstractmethod
    async def connect(self, config: TransportConfig, callbacks: TransportCallbacks) -> None:
        pass

    @abstractmethod
    def send_audio(self, frame: AudioFrame) -> None:
        """Best-effort, non-blocking enqueue of one captured frame."""
        pass

    @abstractmethod
    async def send_tool_results(self, results: List[ToolCallResult]) -> None:
        """Deliver one batch of results. Called once per tool-call batch."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Idempotent."""
        pass
