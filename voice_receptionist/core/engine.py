"""
Receptionist engine - the session state machine.

States: idle -> connecting -> {staff | patient_facing} -> idle.
Any failure (device, connect, timeout, transport) tears the session down
and returns to idle, surfacing exactly one SessionError event.

Lifecycle:
1. start(mode) -> acquire audio, arm the connect timeout, connect transport
2. transport on_open -> cancel timeout, enter the mode, stream microphone
3. transport on_message -> playback audio, dispatch tool-call batches
4. stop() / close / error / timeout -> teardown (idempotent)
"""

import asyncio
import binascii
import time
import uuid
from typing import Any, Awaitable, Callable, Dict, Optional, Set, Union

import structlog

from voice_receptionist.audio.pipeline import AudioPipeline
from voice_receptionist.collaborators import maybe_await
from voice_receptionist.config import AppConfig
from voice_receptionist.core.dispatcher import ToolDispatcher
from voice_receptionist.core.prompts import build_system_instruction
from voice_receptionist.core.session import SessionState, VoiceSession
from voice_receptionist.errors import AudioDeviceError
from voice_receptionist.logging_config import clear_correlation_id, set_correlation_id
from voice_receptionist.tools.adapters.gemini import GeminiToolAdapter
from voice_receptionist.tools.context import ConversationMode, ToolExecutionContext
from voice_receptionist.tools.registry import ToolRegistry, tool_registry
from voice_receptionist.transport.base import (
    LiveServerMessage,
    RealtimeTransport,
    TransportCallbacks,
    TransportConfig,
)
from voice_receptionist.transport.gemini_live import GeminiLiveTransport

logger = structlog.get_logger(__name__)

EventCallback = Callable[[Dict[str, Any]], Awaitable[None]]


class ReceptionistEngine:
    """Owns at most one live voice session at a time."""

    def __init__(
        self,
        config: AppConfig,
        services: Any,
        on_event: Optional[EventCallback] = None,
        transport_factory: Optional[Callable[[str], RealtimeTransport]] = None,
        audio_factory: Optional[Callable[[], AudioPipeline]] = None,
        registry: Optional[ToolRegistry] = None,
    ):
        self.config = config
        self.services = services  # implements the collaborator protocols
        self.on_event = on_event
        self.registry = registry or tool_registry
        self.registry.initialize_default_tools()
        self.adapter = GeminiToolAdapter(self.registry)
        self.dispatcher = ToolDispatcher(self.adapter)

        self._transport_factory = transport_factory or self._default_transport
        self._audio_factory = audio_factory or (lambda: AudioPipeline.from_config(config.audio))

        self._state = SessionState.IDLE
        self._session: Optional[VoiceSession] = None
        self._background: Set[asyncio.Task] = set()

    def _default_transport(self, session_id: str) -> RealtimeTransport:
        gemini = self.config.gemini
        return GeminiLiveTransport(
            api_key=gemini.api_key or "",
            endpoint=gemini.endpoint,
            max_message_bytes=gemini.max_message_bytes,
            session_id=session_id,
        )

    # -- observable state ---------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[VoiceSession]:
        return self._session

    @property
    def active_patient_id(self) -> Optional[str]:
        return self._session.active_patient_id if self._session else None

    @property
    def audio_level(self) -> float:
        if self._session is None or self._session.audio is None:
            return 0.0
        return self._session.audio.audio_level

    async def _emit(self, event: Dict[str, Any]) -> None:
        if self.on_event is None:
            return
        try:
            await self.on_event(event)
        except Exception as e:
            logger.error("Event callback failed", event_type=event.get("type"), error=str(e), exc_info=True)

    def _spawn(self, coro: Awaitable[None]) -> None:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _set_state(self, state: SessionState) -> None:
        previous, self._state = self._state, state
        if previous != state:
            logger.info("Session state changed", state=state.value, previous=previous.value)
            await self._emit({"type": "StateChanged", "state": state.value, "previous": previous.value})

    # -- start ------------------------------------------------------------

    async def start(self, mode: Union[ConversationMode, str] = ConversationMode.STAFF) -> bool:
        """
        Start a session in ``mode``.

        Returns False if the session could not be started (already
        connecting, configuration or device error, connect failure). A
        True return means the connection is established and setup was
        sent; the mode is entered when the model acknowledges it.
        """
        mode = ConversationMode(mode)

        if self._state == SessionState.CONNECTING:
            logger.warning("Start ignored: a session is already connecting")
            return False
        if self._session is not None:
            logger.info("Stopping current session before starting a new one")
            await self.stop()

        if not (self.config.gemini.api_key or "").strip():
            logger.error("Cannot start voice session: Gemini API key not configured")
            await self._emit({
                "type": "SessionError",
                "kind": "configuration",
                "message": "Gemini API key not configured. Voice features require a valid API key.",
            })
            return False

        session_id = f"vs-{uuid.uuid4().hex[:12]}"
        set_correlation_id(session_id)
        context = ToolExecutionContext.from_store(
            session_id,
            self.services,
            mode=mode,
            config=self.config.model_dump(),
        )
        context.reset()
        session = VoiceSession(session_id=session_id, mode=mode, context=context)
        self._session = session
        logger.info("Starting voice session", session_id=session_id, mode=mode.value)
        await self._set_state(SessionState.CONNECTING)

        session.audio = self._audio_factory()
        try:
            session.audio.acquire()
        except AudioDeviceError as e:
            await self._fail(session, "device", str(e))
            return False

        loop = asyncio.get_running_loop()
        session.connect_timeout_handle = loop.call_later(
            self.config.session.connect_timeout_sec,
            self._on_connect_timeout,
            session,
        )

        try:
            transport_config = await self._build_transport_config(session)
        except Exception as e:
            logger.error("Failed to prepare session", session_id=session_id, error=str(e), exc_info=True)
            await self._fail(session, "configuration", f"Failed to initialize voice session: {e}")
            return False

        session.transport = self._transport_factory(session_id)
        session.connect_task = asyncio.ensure_future(
            session.transport.connect(transport_config, self._callbacks_for(session))
        )
        # wait() instead of await: stop() may cancel the handshake
        await asyncio.wait({session.connect_task})

        if session.connect_task.cancelled():
            return False
        error = session.connect_task.exception()
        if error is not None:
            await self._fail(
                session,
                "connect",
                "Could not connect to the Gemini Live service. Please check your network connection or try again.",
            )
            return False
        return session is self._session

    async def _build_transport_config(self, session: VoiceSession) -> TransportConfig:
        gemini = self.config.gemini
        study = await maybe_await(self.services.get_study_details())
        voice = gemini.patient_voice if session.mode == ConversationMode.PATIENT else gemini.staff_voice
        return TransportConfig(
            model=gemini.model,
            voice=voice,
            system_instruction=build_system_instruction(
                session.mode, self.config.receptionist, study, session.context.today()
            ),
            tools=self.adapter.get_tools_config(),
            response_modalities=list(gemini.response_modalities),
            enable_input_transcription=gemini.enable_input_transcription,
            enable_output_transcription=gemini.enable_output_transcription,
        )

    def _callbacks_for(self, session: VoiceSession) -> TransportCallbacks:
        async def on_open() -> None:
            await self._handle_open(session)

        async def on_message(message: LiveServerMessage) -> None:
            await self._handle_message(session, message)

        async def on_error(error: Exception) -> None:
            await self._fail(session, "transport", f"Voice connection error: {error}")

        async def on_close(code: Optional[int], reason: str) -> None:
            await self._handle_close(session, code, reason)

        return TransportCallbacks(on_open=on_open, on_message=on_message, on_error=on_error, on_close=on_close)

    def _on_connect_timeout(self, session: VoiceSession) -> None:
        session.connect_timeout_handle = None
        if session is not self._session or session.opened:
            return
        logger.warning(
            "Connection timed out",
            session_id=session.session_id,
            timeout_sec=self.config.session.connect_timeout_sec,
        )
        self._spawn(self._fail(
            session,
            "timeout",
            "Connection timed out. Please check your network or permissions.",
        ))

    # -- transport events -------------------------------------------------

    async def _handle_open(self, session: VoiceSession) -> None:
        if session is not self._session or session.ending:
            return
        session.cancel_connect_timeout()
        session.opened = True
        await self._set_state(SessionState.for_mode(session.mode))

        transport = session.transport
        try:
            session.audio.start_capture(transport.send_audio, on_level=self._on_level)
        except AudioDeviceError as e:
            await self._fail(session, "device", str(e))
            return
        logger.info("Voice session active", session_id=session.session_id, mode=session.mode.value)

    def _on_level(self, level: float) -> None:
        self._spawn(self._emit({"type": "AudioLevel", "level": level}))

    async def _handle_message(self, session: VoiceSession, message: LiveServerMessage) -> None:
        if session is not self._session or session.ending:
            return

        if message.interrupted:
            stopped = session.audio.interrupt_playback()
            logger.debug("Model output interrupted", session_id=session.session_id, chunks_stopped=stopped)

        for payload in message.audio:
            try:
                session.audio.play_base64(payload)
            except (binascii.Error, ValueError) as e:
                logger.warning("Skipping undecodable audio part", session_id=session.session_id, error=str(e))

        if message.input_transcription:
            session.input_transcription_buffer += message.input_transcription
        if message.output_transcription:
            session.output_transcription_buffer += message.output_transcription
        if message.turn_complete:
            for entry in session.flush_transcription():
                await self._emit({"type": "Transcript", "role": entry["role"], "text": entry["text"]})

        if message.tool_calls:
            await self._dispatch_tools(session, message)

    async def _dispatch_tools(self, session: VoiceSession, message: LiveServerMessage) -> None:
        previous_patient = session.active_patient_id
        results = await self.dispatcher.dispatch(message.tool_calls, session.context, session.transport)
        if session is not self._session:
            return
        await self._emit({
            "type": "ToolCallsDispatched",
            "count": len(results),
            "names": [r.name for r in results],
        })
        if session.active_patient_id != previous_patient:
            await self._emit({"type": "ActivePatientChanged", "patient_id": session.active_patient_id})

    async def _handle_close(self, session: VoiceSession, code: Optional[int], reason: str) -> None:
        if session is not self._session or session.ending:
            return
        if not session.opened:
            await self._fail(session, "connect", f"Connection closed before setup completed ({code}: {reason})")
        elif code not in (None, 1000):
            await self._fail(session, "transport", f"Voice connection closed ({code}: {reason})")
        else:
            logger.info("Voice session closed by server", session_id=session.session_id)
            await self._teardown(session)

    # -- teardown -----------------------------------------------------------

    async def _fail(self, session: VoiceSession, kind: str, message: str) -> None:
        """Tear down and surface one error, unless the session already ended."""
        if session is not self._session or session.ending:
            return
        logger.error("Voice session failed", session_id=session.session_id, kind=kind, error=message)
        await self._teardown(session)
        await self._emit({"type": "SessionError", "kind": kind, "message": message})

    async def stop(self) -> None:
        """Stop the current session. Safe to call at any time, any number of times."""
        session = self._session
        if session is None or session.ending:
            if self._state != SessionState.IDLE and session is None:
                await self._set_state(SessionState.IDLE)
            return
        logger.info("Stopping voice session", session_id=session.session_id)
        await self._teardown(session)

    async def _teardown(self, session: VoiceSession) -> None:
        session.ending = True
        session.cancel_connect_timeout()
        if self._session is session:
            self._session = None

        connect_task = session.connect_task
        if connect_task is not None and not connect_task.done() and connect_task is not asyncio.current_task():
            # Discarded, not awaited
            connect_task.cancel()

        if session.audio is not None:
            session.audio.close()
        if session.transport is not None:
            try:
                await session.transport.close()
            except Exception as e:
                logger.warning("Transport close failed", session_id=session.session_id, error=str(e))

        had_patient = session.active_patient_id is not None
        session.context.reset()
        session.flush_transcription()

        logger.info(
            "Voice session ended",
            session_id=session.session_id,
            duration_seconds=round(time.time() - session.started_at, 2),
            transcript_entries=len(session.transcript),
        )
        clear_correlation_id()

        if self._session is None:
            await self._set_state(SessionState.IDLE)
        if had_patient:
            await self._emit({"type": "ActivePatientChanged", "patient_id": None})
