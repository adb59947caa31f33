"""Audio capture, encoding and gapless playback."""

from voice_receptionist.audio.codec import (
    AudioFrame,
    decode_base64_pcm16,
    encode_frame,
    float_to_pcm16,
    pcm16_to_float,
    resample,
    rms,
)
from voice_receptionist.audio.capture import MicrophoneCapture
from voice_receptionist.audio.playback import PlaybackScheduler, ScheduledChunk, SpeakerPlayback
from voice_receptionist.audio.pipeline import AudioPipeline

__all__ = [
    "AudioFrame",
    "AudioPipeline",
    "MicrophoneCapture",
    "PlaybackScheduler",
    "ScheduledChunk",
    "SpeakerPlayback",
    "decode_base64_pcm16",
    "encode_frame",
    "float_to_pcm16",
    "pcm16_to_float",
    "resample",
    "rms",
]
