"""
PCM16 <-> float conversion, level metering and resampling.

Wire audio is little-endian signed 16-bit mono. Device audio is float32 in
[-1, 1].
"""

import base64
from dataclasses import dataclass

import numpy as np

PCM16_MAX = 32767
PCM16_MIN = -32768


@dataclass
class AudioFrame:
    """One captured block, ready to send. Never retained past one send."""
    pcm16: bytes
    sample_rate: int
    level: float = 0.0

    @property
    def num_samples(self) -> int:
        return len(self.pcm16) // 2

    def to_base64(self) -> str:
        return base64.b64encode(self.pcm16).decode("ascii")


def rms(samples: np.ndarray) -> float:
    """Root-mean-square of float samples (0.0 for an empty block)."""
    if samples.size == 0:
        return 0.0
    samples = samples.astype(np.float64, copy=False)
    return float(np.sqrt(np.mean(np.square(samples))))


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float samples to PCM16 LE bytes.

    Out-of-range input saturates at the int16 limits instead of wrapping;
    NaN becomes silence and infinities full scale.
    """
    samples = np.asarray(samples, dtype=np.float64).reshape(-1)
    scaled = np.nan_to_num(samples, nan=0.0, posinf=1.0, neginf=-1.0) * PCM16_MAX
    clipped = np.clip(scaled, PCM16_MIN, PCM16_MAX)
    return clipped.astype("<i2").tobytes()


def pcm16_to_float(pcm16: bytes) -> np.ndarray:
    """Convert PCM16 LE bytes to float32 samples in [-1, 1)."""
    if len(pcm16) % 2:
        # A trailing odd byte cannot form a sample
        pcm16 = pcm16[:-1]
    ints = np.frombuffer(pcm16, dtype="<i2")
    return ints.astype(np.float32) / 32768.0


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resample of mono float samples."""
    samples = np.asarray(samples, dtype=np.float32).reshape(-1)
    if source_rate == target_rate or samples.size == 0:
        return samples
    target_len = max(1, int(round(samples.size * target_rate / source_rate)))
    src_index = np.arange(samples.size, dtype=np.float64)
    tgt_index = np.linspace(0.0, samples.size - 1, num=target_len, dtype=np.float64)
    return np.interp(tgt_index, src_index, samples).astype(np.float32)


def encode_frame(samples: np.ndarray, sample_rate: int) -> AudioFrame:
    """Meter and encode one captured float block."""
    flat = np.asarray(samples, dtype=np.float32).reshape(-1)
    return AudioFrame(pcm16=float_to_pcm16(flat), sample_rate=sample_rate, level=rms(flat))


def decode_base64_pcm16(data: str) -> np.ndarray:
    return pcm16_to_float(base64.b64decode(data))
