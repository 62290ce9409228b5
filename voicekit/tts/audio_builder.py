"""
Audio builder: joins several synthesised clips and silence gaps into
one track, then exports it as WAV or MP3.

MP3 export goes through pydub and needs ffmpeg on the PATH.
"""

import io
import logging
from pathlib import Path
from typing import Union

from pydub import AudioSegment

from .audio import AudioResult

logger = logging.getLogger(__name__)


class AudioBuilder:
    """
    Incrementally builds an audio track from :class:`AudioResult` clips.

    Usage::

        builder = AudioBuilder(sample_rate=engine.sample_rate)
        builder.add_audio(engine.generate("Chapter one."))
        builder.add_silence(0.8)
        builder.add_audio(engine.generate("It was a dark night."))
        builder.normalize()
        builder.export_mp3("story.mp3")
    """

    def __init__(self, sample_rate: int = 22050):
        self._sample_rate = sample_rate
        self._audio = AudioSegment.empty()

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    def add_silence(self, duration_seconds: float) -> None:
        """Append silence of the given duration."""
        if duration_seconds <= 0:
            return
        ms = int(duration_seconds * 1000)
        self._audio += AudioSegment.silent(duration=ms, frame_rate=self._sample_rate)

    def add_audio(self, result: AudioResult) -> None:
        """Append a clip, resampling it if its rate differs from the track."""
        if result.is_empty:
            return
        segment = AudioSegment.from_wav(io.BytesIO(result.to_wav_bytes()))
        if segment.frame_rate != self._sample_rate:
            logger.debug(
                "Resampling clip %d Hz -> %d Hz", segment.frame_rate, self._sample_rate
            )
            segment = segment.set_frame_rate(self._sample_rate)
        self._audio += segment

    def normalize(self, target_dBFS: float = -18.0) -> None:
        """Normalize volume to *target_dBFS*."""
        if len(self._audio) == 0:
            return
        current = self._audio.dBFS
        if current == float("-inf"):
            return
        self._audio = self._audio.apply_gain(target_dBFS - current)

    def apply_crossfade(self, ms: int = 50) -> None:
        """Apply fade-in/out to smooth the track boundaries."""
        if len(self._audio) == 0 or ms <= 0:
            return
        self._audio = self._audio.fade_in(ms).fade_out(ms)

    def export_mp3(self, output_path: Union[str, Path], bitrate: str = "192k") -> Path:
        """Export assembled audio as MP3."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._audio.export(str(path), format="mp3", bitrate=bitrate)
        self._log_export(path)
        return path

    def export_wav(self, output_path: Union[str, Path]) -> Path:
        """Export assembled audio as WAV."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self._audio.export(str(path), format="wav")
        self._log_export(path)
        return path

    def export(self, output_path: Union[str, Path], bitrate: str = "192k") -> Path:
        """Export by file extension (``.wav`` or ``.mp3``)."""
        if str(output_path).lower().endswith(".wav"):
            return self.export_wav(output_path)
        return self.export_mp3(output_path, bitrate=bitrate)

    def _log_export(self, path: Path) -> None:
        dur = self.get_duration()
        size_mb = path.stat().st_size / (1024 * 1024)
        logger.info("Exported %s: %.1fs, %.2f MB", path, dur, size_mb)

    def get_duration(self) -> float:
        """Current total duration in seconds."""
        return len(self._audio) / 1000.0

    @property
    def is_empty(self) -> bool:
        return len(self._audio) == 0

    def __repr__(self) -> str:
        return f"AudioBuilder(duration={self.get_duration():.1f}s)"
