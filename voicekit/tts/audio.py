"""
Generated audio and its WAV container.

Samples are float32 in [-1, 1].  WAV files are written as 16-bit mono
PCM, so a save/load cycle keeps the sample count and rate exactly and
the values up to 16-bit quantisation.
"""

import io
import logging
import wave
from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_WIDTH = 2  # 16-bit PCM
CHANNELS = 1  # mono
_INT16_SCALE = 32767.0


def float_to_pcm16(samples: np.ndarray) -> bytes:
    """Convert float32 [-1, 1] samples to little-endian int16 PCM bytes."""
    audio = np.clip(np.asarray(samples, dtype=np.float32), -1.0, 1.0)
    return (audio * _INT16_SCALE).astype("<i2").tobytes()


def pcm16_to_float(pcm_data: bytes) -> np.ndarray:
    """Inverse of :func:`float_to_pcm16`."""
    ints = np.frombuffer(pcm_data, dtype="<i2")
    return (ints.astype(np.float32) / _INT16_SCALE).clip(-1.0, 1.0)


def wrap_wav(pcm_data: bytes, sample_rate: int) -> bytes:
    """Wrap raw 16-bit mono PCM in a WAV container."""
    buf = io.BytesIO()
    with wave.open(buf, "wb") as wf:
        wf.setnchannels(CHANNELS)
        wf.setsampwidth(SAMPLE_WIDTH)
        wf.setframerate(sample_rate)
        wf.writeframes(pcm_data)
    return buf.getvalue()


@dataclass
class AudioResult:
    """
    Synthesised speech.

    Attributes:
        samples:     Mono float32 samples in [-1.0, 1.0].
        sample_rate: Sample rate in Hz.
    """

    samples: np.ndarray = field(default_factory=lambda: np.zeros(0, dtype=np.float32))
    sample_rate: int = 0

    def __post_init__(self):
        self.samples = np.asarray(self.samples, dtype=np.float32).reshape(-1)

    @property
    def num_samples(self) -> int:
        return int(self.samples.shape[0])

    @property
    def duration(self) -> float:
        """Length in seconds."""
        return self.num_samples / self.sample_rate if self.sample_rate > 0 else 0.0

    @property
    def is_empty(self) -> bool:
        return self.num_samples == 0

    # ------------------------------------------------------------------
    # WAV export / import
    # ------------------------------------------------------------------

    def to_wav_bytes(self) -> bytes:
        """Serialise to a complete WAV file (16-bit mono PCM)."""
        if self.sample_rate <= 0:
            raise ValueError(f"Invalid sample rate: {self.sample_rate}")
        return wrap_wav(float_to_pcm16(self.samples), self.sample_rate)

    def save_wav(self, output_path: Union[str, Path]) -> Path:
        """
        Write the audio to *output_path* as WAV.

        Raises:
            ValueError: If there are no samples or the rate is not positive.
        """
        if self.is_empty:
            raise ValueError("Cannot save empty audio samples")
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.to_wav_bytes())
        logger.info(
            "Saved %d samples (%.2fs @ %d Hz) to %s",
            self.num_samples,
            self.duration,
            self.sample_rate,
            path,
        )
        return path

    @classmethod
    def from_wav_bytes(cls, wav_bytes: bytes) -> "AudioResult":
        """Decode a 16-bit WAV file; multi-channel input is down-mixed."""
        with wave.open(io.BytesIO(wav_bytes), "rb") as wf:
            if wf.getsampwidth() != SAMPLE_WIDTH:
                raise ValueError(f"Unsupported sample width {wf.getsampwidth()}")
            channels = wf.getnchannels()
            rate = wf.getframerate()
            raw = wf.readframes(wf.getnframes())

        samples = pcm16_to_float(raw)
        if channels > 1:
            samples = samples.reshape(-1, channels).mean(axis=1)
        return cls(samples=samples, sample_rate=rate)

    @classmethod
    def load_wav(cls, input_path: Union[str, Path]) -> "AudioResult":
        return cls.from_wav_bytes(Path(input_path).read_bytes())

    def __repr__(self) -> str:
        return (
            f"AudioResult(samples={self.num_samples}, "
            f"rate={self.sample_rate}Hz, {self.duration:.2f}s)"
        )
