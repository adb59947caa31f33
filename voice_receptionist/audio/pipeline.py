"""
Full-duplex audio pipeline: microphone capture out, model audio in.

Knows nothing about conversation semantics. The engine acquires devices
before connecting, starts capture once the live session is open and
tears everything down on stop.
"""

import asyncio
import base64
from typing import Callable, Optional

import structlog

from voice_receptionist.audio.capture import FrameCallback, MicrophoneCapture
from voice_receptionist.audio.playback import ScheduledChunk, SpeakerPlayback
from voice_receptionist.config import AudioConfig

logger = structlog.get_logger(__name__)


class AudioPipeline:

    def __init__(self, capture: MicrophoneCapture, playback: SpeakerPlayback):
        self.capture = capture
        self.playback = playback
        self._closed = True
        self._level_listener: Optional[Callable[[float], None]] = None
        self.audio_level = 0.0

    @classmethod
    def from_config(cls, config: AudioConfig) -> "AudioPipeline":
        capture = MicrophoneCapture(
            sample_rate=config.input_sample_rate_hz,
            block_size=config.input_block_size,
            device=config.input_device,
            device_sample_rate=config.device_input_sample_rate_hz,
        )
        playback = SpeakerPlayback(
            sample_rate=config.output_sample_rate_hz,
            block_size=config.output_block_size,
            device=config.output_device,
            device_sample_rate=config.device_output_sample_rate_hz,
        )
        return cls(capture, playback)

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self) -> None:
        """Open the playback context and the microphone.

        Raises:
            AudioDeviceError: if either device cannot be acquired; anything
                already opened is released first.
        """
        self._closed = False
        try:
            self.playback.open()
            self.capture.open()
        except Exception:
            self.close()
            raise

    def start_capture(
        self,
        on_frame: FrameCallback,
        on_level: Optional[Callable[[float], None]] = None,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        self._level_listener = on_level

        def deliver(frame):
            self.audio_level = frame.level
            if self._level_listener is not None:
                self._level_listener(frame.level)
            on_frame(frame)

        self.capture.start(deliver, loop=loop)
        logger.debug("Capture streaming started")

    def play_pcm16(self, pcm16: bytes) -> Optional[ScheduledChunk]:
        if self._closed:
            return None
        return self.playback.enqueue_pcm16(pcm16)

    def play_base64(self, data: str) -> Optional[ScheduledChunk]:
        return self.play_pcm16(base64.b64decode(data))

    def interrupt_playback(self) -> int:
        return self.playback.interrupt()

    def close(self) -> None:
        """Stop capture tracks, scheduled playback and the playback context.

        Idempotent.
        """
        already_closed = self._closed
        self._closed = True
        self._level_listener = None
        self.audio_level = 0.0
        self.capture.close()
        self.playback.close()
        if not already_closed:
            logger.debug("Audio pipeline closed")
