"""
Microphone capture.

A sounddevice InputStream delivers fixed-size float32 blocks on the
PortAudio thread; each block is handed to the asyncio loop, metered,
converted to PCM16 and passed to the frame callback.
"""

import asyncio
from typing import Any, Callable, Optional, Union

import numpy as np
import structlog

from voice_receptionist.audio.codec import AudioFrame, encode_frame, resample
from voice_receptionist.errors import AudioDeviceError

logger = structlog.get_logger(__name__)

FrameCallback = Callable[[AudioFrame], None]


def default_input_stream_factory(**kwargs):
    """Open a sounddevice InputStream (imported lazily: needs PortAudio)."""
    import sounddevice as sd
    return sd.InputStream(**kwargs)


class MicrophoneCapture:
    """Exclusive input stream segmented into fixed-size frames."""

    def __init__(
        self,
        sample_rate: int = 16000,
        block_size: int = 4096,
        device: Optional[Union[int, str]] = None,
        device_sample_rate: Optional[int] = None,
        stream_factory: Callable[..., Any] = default_input_stream_factory,
    ):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.device = device
        self.device_sample_rate = device_sample_rate or sample_rate
        self._stream_factory = stream_factory
        self._stream = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._on_frame: Optional[FrameCallback] = None
        self._frames_captured = 0

    @property
    def active(self) -> bool:
        return self._stream is not None

    @property
    def frames_captured(self) -> int:
        return self._frames_captured

    def open(self) -> None:
        """Acquire the input device without delivering frames yet.

        Raises:
            AudioDeviceError: permission denied, no device, unsupported rate
        """
        if self._stream is not None:
            return
        # Device block size scaled so one device block is one wire frame
        device_block = int(round(self.block_size * self.device_sample_rate / self.sample_rate))
        try:
            self._stream = self._stream_factory(
                samplerate=self.device_sample_rate,
                blocksize=device_block,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._device_callback,
            )
        except Exception as e:
            raise AudioDeviceError(f"Microphone unavailable: {e}") from e
        logger.info(
            "Microphone acquired",
            device=self.device,
            sample_rate=self.device_sample_rate,
            block_size=device_block,
        )

    def start(self, on_frame: FrameCallback, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        """Begin delivering frames to ``on_frame`` on the event loop."""
        if self._stream is None:
            self.open()
        self._loop = loop or asyncio.get_running_loop()
        self._on_frame = on_frame
        try:
            self._stream.start()
        except Exception as e:
            self.close()
            raise AudioDeviceError(f"Could not start microphone stream: {e}") from e

    def _device_callback(self, indata, frames, time_info, status) -> None:
        # PortAudio thread: copy and hop to the loop
        if status:
            logger.debug("Input stream status", status=str(status))
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        block = np.array(indata[:, 0] if getattr(indata, "ndim", 1) > 1 else indata, dtype=np.float32)
        try:
            loop.call_soon_threadsafe(self.process_block, block)
        except RuntimeError:
            # Loop closed between the check and the call
            pass

    def process_block(self, block: np.ndarray) -> Optional[AudioFrame]:
        """Meter, resample and encode one device block, then deliver it."""
        if self._on_frame is None:
            return None
        samples = resample(block, self.device_sample_rate, self.sample_rate)
        frame = encode_frame(samples, self.sample_rate)
        self._frames_captured += 1
        self._on_frame(frame)
        return frame

    def close(self) -> None:
        """Stop and release the device. Safe to call repeatedly."""
        stream, self._stream = self._stream, None
        self._on_frame = None
        if stream is None:
            return
        try:
            stream.stop()
        except Exception as e:
            logger.debug("Input stream stop failed", error=str(e))
        try:
            stream.close()
        except Exception as e:
            logger.debug("Input stream close failed", error=str(e))
        logger.info("Microphone released", frames_captured=self._frames_captured)
