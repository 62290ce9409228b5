"""
Offline speech recognition over a detected STT model directory.

:class:`SpeechRecognizer` mirrors :class:`~voicekit.tts.SynthesisEngine`:
detection picks the architecture, a backend built by
*backend_factory* (sherpa-onnx by default) does the decoding.
"""

import logging
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import numpy as np

from voicekit.detect import DetectResult, SttModelKind, detect_stt_model
from voicekit.errors import (
    EngineReleasedError,
    InitializationError,
    InvalidArgumentError,
    NotInitializedError,
    UnsupportedModelError,
    VoiceKitError,
)

logger = logging.getLogger(__name__)


class BaseRecognizerBackend(ABC):
    """A loaded speech-to-text session."""

    @abstractmethod
    def transcribe(self, samples: np.ndarray, sample_rate: int) -> str:
        """Decode one utterance of mono float32 audio."""

    def close(self) -> None:
        """Free runtime resources."""


# kind -> (OfflineRecognizer factory, path slot -> factory keyword)
_SHERPA_FACTORIES: Dict[SttModelKind, tuple] = {
    SttModelKind.TRANSDUCER: (
        "from_transducer",
        {"encoder": "encoder", "decoder": "decoder", "joiner": "joiner", "tokens": "tokens"},
    ),
    SttModelKind.PARAFORMER: (
        "from_paraformer",
        {"paraformer": "paraformer", "tokens": "tokens"},
    ),
    SttModelKind.NEMO_CTC: ("from_nemo_ctc", {"nemo_ctc": "model", "tokens": "tokens"}),
    SttModelKind.WENET_CTC: ("from_wenet_ctc", {"wenet_ctc": "model", "tokens": "tokens"}),
    SttModelKind.SENSE_VOICE: (
        "from_sense_voice",
        {"sense_voice": "model", "tokens": "tokens"},
    ),
    SttModelKind.ZIPFORMER_CTC: (
        "from_zipformer_ctc",
        {"zipformer_ctc": "model", "tokens": "tokens"},
    ),
    SttModelKind.WHISPER: (
        "from_whisper",
        {"whisper_encoder": "encoder", "whisper_decoder": "decoder", "tokens": "tokens"},
    ),
    SttModelKind.FUNASR_NANO: (
        "from_funasr_nano",
        {
            "encoder_adaptor": "encoder_adaptor",
            "llm": "llm",
            "embedding": "embedding",
            "tokenizer": "tokenizer",
        },
    ),
}


def recognizer_kwargs(detect: DetectResult) -> Dict[str, str]:
    """Keyword arguments for the sherpa-onnx recognizer factory."""
    _, fields = _SHERPA_FACTORIES[detect.selected_kind]
    populated = detect.paths.populated()
    return {field: populated[slot] for slot, field in fields.items() if slot in populated}


class SherpaOnnxRecognizerBackend(BaseRecognizerBackend):
    """Offline recognition via ``sherpa_onnx.OfflineRecognizer``."""

    def __init__(
        self,
        detect: DetectResult,
        num_threads: int = 2,
        debug: bool = False,
        provider: str = "cpu",
    ):
        try:
            import sherpa_onnx
        except ImportError:
            raise ImportError(
                "sherpa-onnx is required.  Install with: pip install sherpa-onnx"
            )

        kind = detect.selected_kind
        factory_name, _ = _SHERPA_FACTORIES[kind]
        factory = getattr(sherpa_onnx.OfflineRecognizer, factory_name, None)
        if factory is None:
            raise UnsupportedModelError(
                f"STT: installed sherpa-onnx has no {factory_name}() for {kind.value}"
            )

        logger.info("STT: Creating OfflineRecognizer (%s)...", kind.value)
        self._recognizer = factory(
            num_threads=num_threads,
            debug=debug,
            provider=provider,
            **recognizer_kwargs(detect),
        )

    def transcribe(self, samples: np.ndarray, sample_rate: int) -> str:
        stream = self._recognizer.create_stream()
        stream.accept_waveform(sample_rate, samples)
        self._recognizer.decode_stream(stream)
        return stream.result.text.strip()

    def close(self) -> None:
        self._recognizer = None


class SpeechRecognizer:
    """
    Speech-to-text over a detected model directory.

    Usage::

        recognizer = SpeechRecognizer()
        recognizer.initialize("models/sherpa-onnx-whisper-tiny.en")
        text = recognizer.recognize(audio.samples, audio.sample_rate)
        recognizer.release()
    """

    def __init__(
        self,
        backend_factory: Optional[Callable[..., BaseRecognizerBackend]] = None,
    ):
        self._backend_factory = backend_factory or SherpaOnnxRecognizerBackend
        self._lock = threading.RLock()
        self._backend: Optional[BaseRecognizerBackend] = None
        self._detect: Optional[DetectResult] = None
        self._released = False

    @property
    def is_initialized(self) -> bool:
        return self._backend is not None

    @property
    def detect_result(self) -> Optional[DetectResult]:
        return self._detect

    def initialize(
        self,
        model_dir: Union[str, Path],
        model_type: Optional[str] = None,
        prefer_int8: Optional[bool] = None,
        num_threads: int = 2,
        debug: bool = False,
        provider: str = "cpu",
    ) -> DetectResult:
        """
        Detect and load the STT model in *model_dir*.

        Returns the detection result; on ``ok=False`` nothing is loaded.

        Raises:
            InvalidArgumentError: *num_threads* < 1.
            EngineReleasedError:  The recognizer was already released.
            InitializationError:  The runtime failed to load the model.
        """
        if num_threads < 1:
            raise InvalidArgumentError(f"num_threads must be >= 1, got {num_threads}")

        with self._lock:
            if self._released:
                raise EngineReleasedError("STT: Recognizer was released")
            self._dispose()

            detect = detect_stt_model(model_dir, prefer_int8=prefer_int8, model_type=model_type)
            if not detect.ok:
                logger.error("%s", detect.error)
                return detect

            try:
                backend = self._backend_factory(
                    detect, num_threads=num_threads, debug=debug, provider=provider
                )
            except VoiceKitError:
                raise
            except Exception as e:
                raise InitializationError(
                    f"STT: Failed to load {detect.selected_kind.value} model: {e}"
                ) from e

            self._backend = backend
            self._detect = detect
            logger.info("STT: Initialization successful (%s)", detect.selected_kind.value)
            return detect

    def recognize(self, samples, sample_rate: int) -> str:
        """
        Transcribe one utterance.

        Raises:
            NotInitializedError:  Before initialize() or after release().
            InvalidArgumentError: Empty audio or non-positive rate.
        """
        with self._lock:
            if self._backend is None:
                raise NotInitializedError("STT: Not initialized. Call initialize() first.")
            audio = np.asarray(samples, dtype=np.float32).reshape(-1)
            if audio.size == 0:
                raise InvalidArgumentError("STT: Input audio is empty")
            if sample_rate <= 0:
                raise InvalidArgumentError(f"STT: Invalid sample rate: {sample_rate}")
            text = self._backend.transcribe(audio, sample_rate)
            logger.info("STT: Recognised %d samples -> %d chars", audio.size, len(text))
            return text

    def release(self) -> None:
        with self._lock:
            if self._backend is not None:
                logger.info("STT: Resources released")
            self._dispose()
            self._released = True

    def _dispose(self) -> None:
        backend, self._backend = self._backend, None
        self._detect = None
        if backend is not None:
            backend.close()
