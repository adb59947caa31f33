"""Session state machine, tool dispatch and system instructions."""

from voice_receptionist.core.dispatcher import ToolDispatcher
from voice_receptionist.core.engine import ReceptionistEngine
from voice_receptionist.core.session import SessionState, VoiceSession

__all__ = ["ReceptionistEngine", "SessionState", "ToolDispatcher", "VoiceSession"]
