"""Per-session state owned by the engine."""

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from voice_receptionist.tools.context import ConversationMode, ToolExecutionContext


class SessionState(str, Enum):
    IDLE = "idle"
    CONNECTING = "connecting"
    STAFF = "staff"
    PATIENT_FACING = "patient_facing"

    @property
    def is_active(self) -> bool:
        return self in (SessionState.STAFF, SessionState.PATIENT_FACING)

    @classmethod
    def for_mode(cls, mode: ConversationMode) -> "SessionState":
        return cls.PATIENT_FACING if mode == ConversationMode.PATIENT else cls.STAFF


@dataclass
class VoiceSession:
    """One live conversation, from start to stop."""
    session_id: str
    mode: ConversationMode
    context: ToolExecutionContext
    transport: Any = None   # RealtimeTransport
    audio: Any = None       # AudioPipeline
    started_at: float = field(default_factory=time.time)

    connect_task: Optional[asyncio.Task] = None
    connect_timeout_handle: Optional[asyncio.TimerHandle] = None
    opened: bool = False
    ending: bool = False

    transcript: List[Dict[str, Any]] = field(default_factory=list)
    input_transcription_buffer: str = ""
    output_transcription_buffer: str = ""

    @property
    def active_patient_id(self) -> Optional[str]:
        return self.context.active_patient_id

    def cancel_connect_timeout(self) -> None:
        handle, self.connect_timeout_handle = self.connect_timeout_handle, None
        if handle is not None:
            handle.cancel()

    def flush_transcription(self) -> List[Dict[str, Any]]:
        """Move buffered transcription fragments into the transcript."""
        entries = []
        for role, text in (
            ("user", self.input_transcription_buffer),
            ("assistant", self.output_transcription_buffer),
        ):
            if text.strip():
                entry = {"role": role, "text": text.strip(), "timestamp": time.time()}
                self.transcript.append(entry)
                entries.append(entry)
        self.input_transcription_buffer = ""
        self.output_transcription_buffer = ""
        return entries
