"""
Gapless playback of model audio.

Each decoded chunk is scheduled to start at max(now, next_free_slot) and
the slot advances by the chunk's duration, so a burst of chunks plays
back-to-back with no gap and no overlap. The playback clock is the number
of frames the output device has rendered, so "now" is exact with respect
to what the listener hears.
"""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Union

import numpy as np
import structlog

from voice_receptionist.audio.codec import pcm16_to_float, resample
from voice_receptionist.errors import AudioDeviceError

logger = structlog.get_logger(__name__)


@dataclass
class ScheduledChunk:
    samples: np.ndarray
    start_time: float
    sample_rate: int
    stopped: bool = False
    on_ended: Optional[Callable[["ScheduledChunk"], None]] = field(default=None, repr=False)

    @property
    def duration(self) -> float:
        return self.samples.size / float(self.sample_rate)

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration


class PlaybackScheduler:
    """Tracks in-flight chunks on a shared playback clock.

    Thread-safe: chunks are scheduled from the event loop and rendered from
    the audio device thread.
    """

    def __init__(self, sample_rate: int, clock: Optional[Callable[[], float]] = None):
        self.sample_rate = sample_rate
        self._clock = clock
        self._rendered_frames = 0
        self._next_start_time = 0.0
        self._chunks: List[ScheduledChunk] = []
        self._lock = threading.Lock()

    def current_time(self) -> float:
        if self._clock is not None:
            return self._clock()
        return self._rendered_frames / float(self.sample_rate)

    @property
    def next_start_time(self) -> float:
        return self._next_start_time

    @property
    def in_flight(self) -> List[ScheduledChunk]:
        with self._lock:
            return list(self._chunks)

    def schedule(self, samples: np.ndarray) -> ScheduledChunk:
        samples = np.asarray(samples, dtype=np.float32).reshape(-1)
        with self._lock:
            start = max(self.current_time(), self._next_start_time)
            chunk = ScheduledChunk(samples=samples, start_time=start, sample_rate=self.sample_rate)
            self._next_start_time = chunk.end_time
            self._chunks.append(chunk)
        return chunk

    def render(self, frames: int) -> np.ndarray:
        """Mix the next ``frames`` samples and advance the clock."""
        out = np.zeros(frames, dtype=np.float32)
        with self._lock:
            start_frame = self._rendered_frames
            end_frame = start_frame + frames
            for chunk in self._chunks:
                chunk_start = int(round(chunk.start_time * self.sample_rate))
                chunk_end = chunk_start + chunk.samples.size
                lo = max(start_frame, chunk_start)
                hi = min(end_frame, chunk_end)
                if lo < hi:
                    out[lo - start_frame:hi - start_frame] += chunk.samples[lo - chunk_start:hi - chunk_start]
            self._rendered_frames = end_frame
        self.release_finished()
        np.clip(out, -1.0, 1.0, out=out)
        return out

    def release_finished(self, now: Optional[float] = None) -> List[ScheduledChunk]:
        """Drop chunks whose playback has ended."""
        with self._lock:
            now = self.current_time() if now is None else now
            finished = [c for c in self._chunks if c.end_time <= now]
            if finished:
                self._chunks = [c for c in self._chunks if c.end_time > now]
        for chunk in finished:
            if chunk.on_ended:
                chunk.on_ended(chunk)
        return finished

    def stop_all(self) -> int:
        """Stop every scheduled chunk and rewind the free slot to now."""
        with self._lock:
            stopped, self._chunks = self._chunks, []
            self._next_start_time = self.current_time()
        for chunk in stopped:
            chunk.stopped = True
        return len(stopped)


def default_output_stream_factory(**kwargs):
    """Open a sounddevice OutputStream (imported lazily: needs PortAudio)."""
    import sounddevice as sd
    return sd.OutputStream(**kwargs)


class SpeakerPlayback:
    """Playback context: decodes model audio and feeds the output device."""

    def __init__(
        self,
        sample_rate: int = 24000,
        block_size: int = 1024,
        device: Optional[Union[int, str]] = None,
        device_sample_rate: Optional[int] = None,
        stream_factory: Callable[..., Any] = default_output_stream_factory,
    ):
        self.sample_rate = sample_rate
        self.block_size = block_size
        self.device = device
        self.device_sample_rate = device_sample_rate or sample_rate
        self.scheduler = PlaybackScheduler(self.device_sample_rate)
        self._stream_factory = stream_factory
        self._stream = None
        self._closed = False
        self.chunks_played = 0

    @property
    def active(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        if self._stream is not None:
            return
        self._closed = False
        try:
            self._stream = self._stream_factory(
                samplerate=self.device_sample_rate,
                blocksize=self.block_size,
                channels=1,
                dtype="float32",
                device=self.device,
                callback=self._device_callback,
            )
            self._stream.start()
        except Exception as e:
            self._stream = None
            raise AudioDeviceError(f"Speaker unavailable: {e}") from e
        logger.info("Playback context opened", device=self.device, sample_rate=self.device_sample_rate)

    def _device_callback(self, outdata, frames, time_info, status) -> None:
        if status:
            logger.debug("Output stream status", status=str(status))
        outdata[:, 0] = self.scheduler.render(frames)

    def enqueue_pcm16(self, pcm16: bytes) -> Optional[ScheduledChunk]:
        """Decode a PCM16 payload at the model rate and schedule it."""
        if self._closed:
            return None
        samples = pcm16_to_float(pcm16)
        if samples.size == 0:
            return None
        samples = resample(samples, self.sample_rate, self.device_sample_rate)
        chunk = self.scheduler.schedule(samples)
        chunk.on_ended = self._on_chunk_ended
        return chunk

    def _on_chunk_ended(self, chunk: ScheduledChunk) -> None:
        self.chunks_played += 1

    def interrupt(self) -> int:
        """Barge-in: silence everything scheduled."""
        stopped = self.scheduler.stop_all()
        if stopped:
            logger.debug("Playback interrupted", chunks_stopped=stopped)
        return stopped

    def close(self) -> None:
        """Stop scheduled sources and close the device. Safe to call repeatedly."""
        self._closed = True
        self.scheduler.stop_all()
        stream, self._stream = self._stream, None
        if stream is None:
            return
        started = time.monotonic()
        try:
            stream.stop()
        except Exception as e:
            logger.debug("Output stream stop failed", error=str(e))
        try:
            stream.close()
        except Exception as e:
            logger.debug("Output stream close failed", error=str(e))
        logger.info(
            "Playback context closed",
            chunks_played=self.chunks_played,
            close_ms=round((time.monotonic() - started) * 1000, 1),
        )
