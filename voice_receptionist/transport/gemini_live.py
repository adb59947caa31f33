"""
Gemini Live API transport (bidirectional WebSocket streaming).

Lifecycle:
1. connect() -> opens the WebSocket, starts the receive and send loops,
   sends the setup message
2. setupComplete from the server -> callbacks.on_open
3. send_audio(frame) -> enqueued; the send loop streams it as realtimeInput
4. toolCall from the server -> callbacks.on_message; the engine replies
   with one toolResponse per batch via send_tool_results()
5. close() -> cancels the loops and closes the WebSocket

Audio on the wire is base64 PCM16: 16 kHz upstream, 24 kHz downstream.
"""

import asyncio
import contextlib
import json
import time
from typing import Any, Callable, Dict, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed

from structlog import get_logger
from prometheus_client import Counter, Gauge

from voice_receptionist.audio.codec import AudioFrame
from voice_receptionist.errors import TransportConnectError
from voice_receptionist.transport.base import (
    LiveServerMessage,
    RealtimeTransport,
    ToolCallResult,
    TransportCallbacks,
    TransportConfig,
)

logger = get_logger(__name__)

DEFAULT_ENDPOINT = (
    "wss://generativelanguage.googleapis.com/ws/"
    "google.ai.generativelanguage.v1beta.GenerativeService.BidiGenerateContent"
)

_CLOSE_CODE_MEANINGS = {
    1000: "Normal closure",
    1001: "Going away",
    1006: "Abnormal closure (no close frame)",
    1007: "Invalid frame payload data",
    1008: "Policy violation (likely auth/permission issue)",
    1009: "Message too big",
    1011: "Internal server error",
}

# Metrics
_LIVE_SESSIONS = Gauge(
    "voice_receptionist_live_active_sessions",
    "Number of open Gemini Live connections",
)
_LIVE_AUDIO_SENT = Counter(
    "voice_receptionist_live_audio_bytes_sent",
    "Total PCM16 bytes sent to Gemini Live",
)
_LIVE_AUDIO_RECEIVED = Counter(
    "voice_receptionist_live_audio_bytes_received",
    "Total base64 audio characters received from Gemini Live",
)


def build_setup_message(config: TransportConfig) -> Dict[str, Any]:
    """Build the session setup message for a TransportConfig."""
    generation_config = {
        "responseModalities": list(config.response_modalities),
        "speechConfig": {
            "voiceConfig": {
                "prebuiltVoiceConfig": {
                    "voiceName": config.voice,
                }
            }
        },
    }
    model = config.model if config.model.startswith("models/") else f"models/{config.model}"
    setup: Dict[str, Any] = {
        "model": model,
        "generation_config": generation_config,
    }
    if config.system_instruction:
        setup["system_instruction"] = {"parts": [{"text": config.system_instruction}]}
    if config.tools:
        setup["tools"] = config.tools
    # Empty objects enable transcription with default settings
    if config.enable_input_transcription:
        setup["inputAudioTranscription"] = {}
    if config.enable_output_transcription:
        setup["outputAudioTranscription"] = {}
    return {"setup": setup}


class GeminiLiveTransport(RealtimeTransport):
    """One Gemini Live connection. Create a new instance per session."""

    def __init__(
        self,
        api_key: str,
        endpoint: str = DEFAULT_ENDPOINT,
        max_message_bytes: int = 10 * 1024 * 1024,
        session_id: Optional[str] = None,
        connect_fn: Callable[..., Any] = websockets.connect,
    ):
        self._api_key = api_key
        self._endpoint = endpoint
        self._max_message_bytes = max_message_bytes
        self._session_id = session_id
        self._connect_fn = connect_fn

        self.websocket = None
        self._callbacks: Optional[TransportCallbacks] = None
        self._receive_task: Optional[asyncio.Task] = None
        self._send_task: Optional[asyncio.Task] = None
        self._audio_queue: "asyncio.Queue[AudioFrame]" = asyncio.Queue()
        self._send_lock = asyncio.Lock()

        self._connected = False
        self._setup_complete = False
        self._closed = False
        self._connect_started: Optional[float] = None
        self.frames_sent = 0
        self.frames_dropped = 0

    @property
    def is_open(self) -> bool:
        return self._setup_complete and not self._closed

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self, config: TransportConfig, callbacks: TransportCallbacks) -> None:
        """Open the WebSocket and send setup. on_open fires on setupComplete.

        Raises:
            TransportConnectError: the connection could not be established
        """
        if self._closed:
            raise TransportConnectError("Transport already closed")
        if not self._api_key:
            raise TransportConnectError("API key is required for Gemini Live")

        self._callbacks = callbacks
        self._connect_started = time.monotonic()
        logger.info("Connecting to Gemini Live", session_id=self._session_id, model=config.model, voice=config.voice)

        try:
            websocket = await self._connect_fn(
                f"{self._endpoint}?key={self._api_key}",
                max_size=self._max_message_bytes,
                open_timeout=None,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Gemini Live connection failed", session_id=self._session_id, error=str(e))
            raise TransportConnectError(f"Could not connect to Gemini Live: {e}") from e

        if self._closed:
            # close() ran while the handshake was pending
            with contextlib.suppress(Exception):
                await websocket.close()
            logger.debug("Discarded connection completed after close", session_id=self._session_id)
            return

        self.websocket = websocket
        self._connected = True
        _LIVE_SESSIONS.inc()
        logger.info("Gemini Live WebSocket connected", session_id=self._session_id)

        # Receive loop first so it can catch setupComplete
        self._receive_task = asyncio.create_task(
            self._receive_loop(),
            name=f"gemini-live-receive-{self._session_id}",
        )
        self._send_task = asyncio.create_task(
            self._send_loop(),
            name=f"gemini-live-send-{self._session_id}",
        )

        setup_msg = build_setup_message(config)
        try:
            await self.websocket.send(json.dumps(setup_msg))
        except Exception as e:
            await self.close()
            raise TransportConnectError(f"Failed to send setup: {e}") from e

        logger.info(
            "Sent Gemini Live setup",
            session_id=self._session_id,
            has_system_instruction=bool(config.system_instruction),
            tools_count=sum(len(t.get("functionDeclarations", [])) for t in config.tools),
        )

    async def _send_message(self, message: Dict[str, Any]) -> bool:
        if self.websocket is None or self._closed:
            return False
        async with self._send_lock:
            try:
                await self.websocket.send(json.dumps(message))
                return True
            except Exception as e:
                logger.error("Failed to send message to Gemini Live", session_id=self._session_id, error=str(e))
                return False

    def send_audio(self, frame: AudioFrame) -> None:
        if not self.is_open:
            self.frames_dropped += 1
            return
        # Unbounded: no backpressure policy yet
        self._audio_queue.put_nowait(frame)

    async def _send_loop(self) -> None:
        while True:
            frame = await self._audio_queue.get()
            message = {
                "realtimeInput": {
                    "audio": {
                        "mimeType": f"audio/pcm;rate={frame.sample_rate}",
                        "data": frame.to_base64(),
                    }
                }
            }
            if await self._send_message(message):
                self.frames_sent += 1
                _LIVE_AUDIO_SENT.inc(len(frame.pcm16))

    async def send_tool_results(self, results: List[ToolCallResult]) -> None:
        if not results:
            return
        tool_response = {
            "toolResponse": {
                "functionResponses": [r.to_function_response() for r in results],
            }
        }
        sent = await self._send_message(tool_response)
        logger.info(
            "Sent Gemini Live tool response",
            session_id=self._session_id,
            count=len(results),
            delivered=sent,
        )

    async def _receive_loop(self) -> None:
        callbacks = self._callbacks
        try:
            async for raw in self.websocket:
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.error("Failed to decode Gemini Live message", session_id=self._session_id, error=str(e))
                    continue
                message = LiveServerMessage.from_dict(data)
                await self._handle_message(message)
                if self._closed:
                    return
        except ConnectionClosed as e:
            if self._closed:
                return
            code = e.rcvd.code if e.rcvd is not None else None
            reason = e.rcvd.reason if e.rcvd is not None else ""
            logger.warning(
                "Gemini Live WebSocket closed",
                session_id=self._session_id,
                code=code,
                meaning=_CLOSE_CODE_MEANINGS.get(code, "Unknown"),
                reason=reason,
            )
            if code == 1008:
                logger.error(
                    "Policy violation (1008) - check the API key and Live API access",
                    session_id=self._session_id,
                )
            await callbacks.on_close(code, reason)
            return
        except asyncio.CancelledError:
            raise
        except Exception as e:
            if self._closed:
                return
            logger.error("Gemini Live receive loop error", session_id=self._session_id, error=str(e), exc_info=True)
            await callbacks.on_error(e)
            return

        if not self._closed:
            # Iterator ended without an exception: clean close from the server
            logger.info("Gemini Live stream ended", session_id=self._session_id)
            await callbacks.on_close(1000, "")

    async def _handle_message(self, message: LiveServerMessage) -> None:
        if message.setup_complete and not self._setup_complete:
            self._setup_complete = True
            elapsed = time.monotonic() - (self._connect_started or time.monotonic())
            logger.info("Gemini Live setup complete", session_id=self._session_id, setup_ms=round(elapsed * 1000))
            await self._callbacks.on_open()
            return

        for payload in message.audio:
            _LIVE_AUDIO_RECEIVED.inc(len(payload))

        if message.go_away is not None:
            logger.warning(
                "Gemini Live server sending goAway",
                session_id=self._session_id,
                time_left=message.go_away.get("timeLeft"),
            )
        if message.cancelled_call_ids:
            logger.info(
                "Gemini Live cancelled tool calls",
                session_id=self._session_id,
                ids=message.cancelled_call_ids,
            )

        await self._callbacks.on_message(message)

    async def close(self) -> None:
        """Close the connection and cancel background loops. Safe to call repeatedly."""
        if self._closed:
            return
        self._closed = True
        current = asyncio.current_task()

        for task in (self._send_task, self._receive_task):
            if task is None or task.done() or task is current:
                # Reached from a receive callback: the loop exits on _closed
                continue
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        websocket, self.websocket = self.websocket, None
        if websocket is not None:
            with contextlib.suppress(Exception):
                await websocket.close()
        if self._connected:
            self._connected = False
            _LIVE_SESSIONS.dec()

        logger.info(
            "Gemini Live transport closed",
            session_id=self._session_id,
            frames_sent=self.frames_sent,
            frames_dropped=self.frames_dropped,
        )
