"""
Inference backends for :class:`~voicekit.tts.engine.SynthesisEngine`.

:class:`BaseSynthesisBackend` is the small surface the engine relies
on, so tests and alternative runtimes can stand in for sherpa-onnx.
:class:`SherpaOnnxBackend` builds a ``sherpa_onnx.OfflineTts`` from a
successful :class:`~voicekit.detect.DetectResult`.
"""

import logging
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

import numpy as np

from voicekit.detect.models import DetectResult, TtsModelKind
from voicekit.errors import InitializationError, UnsupportedModelError

from .audio import AudioResult

logger = logging.getLogger(__name__)

# (samples, progress) -> continue flag, the runtime's own callback shape
ChunkCallback = Callable[[np.ndarray, float], int]


class BaseSynthesisBackend(ABC):
    """
    A loaded text-to-speech session.

    Subclasses must implement :meth:`generate` and expose
    ``sample_rate`` and ``num_speakers``.
    """

    @property
    @abstractmethod
    def sample_rate(self) -> int:
        """Native output sample rate in Hz."""

    @property
    @abstractmethod
    def num_speakers(self) -> int:
        """Number of speaker ids; 0 or 1 for single-speaker models."""

    @property
    def backend_name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def generate(
        self,
        text: str,
        sid: int = 0,
        speed: float = 1.0,
        callback: Optional[ChunkCallback] = None,
    ) -> AudioResult:
        """
        Synthesise *text*.

        When *callback* is given it is called with each chunk as it is
        produced and may return 0 to stop generation early.

        Returns:
            All audio produced (possibly truncated after a stop).
        """

    def close(self) -> None:
        """Free runtime resources.  Safe to call more than once."""


# ------------------------------------------------------------------
# sherpa-onnx
# ------------------------------------------------------------------

# kind -> (OfflineTtsModelConfig field, model config class, path slot -> config field)
_SHERPA_MODEL_CONFIGS: Dict[TtsModelKind, tuple] = {
    TtsModelKind.VITS: (
        "vits",
        "OfflineTtsVitsModelConfig",
        {
            "model": "model",
            "tokens": "tokens",
            "lexicon": "lexicon",
            "data_dir": "data_dir",
            "dict_dir": "dict_dir",
        },
    ),
    TtsModelKind.MATCHA: (
        "matcha",
        "OfflineTtsMatchaModelConfig",
        {
            "acoustic_model": "acoustic_model",
            "vocoder": "vocoder",
            "tokens": "tokens",
            "lexicon": "lexicon",
            "data_dir": "data_dir",
            "dict_dir": "dict_dir",
        },
    ),
    TtsModelKind.KOKORO: (
        "kokoro",
        "OfflineTtsKokoroModelConfig",
        {
            "model": "model",
            "voices": "voices",
            "tokens": "tokens",
            "lexicon": "lexicon",
            "data_dir": "data_dir",
            "dict_dir": "dict_dir",
        },
    ),
    TtsModelKind.KITTEN: (
        "kitten",
        "OfflineTtsKittenModelConfig",
        {
            "model": "model",
            "voices": "voices",
            "tokens": "tokens",
            "data_dir": "data_dir",
        },
    ),
    TtsModelKind.ZIPVOICE: (
        "zipvoice",
        "OfflineTtsZipvoiceModelConfig",
        {
            "text_encoder": "encoder",
            "fm_decoder": "decoder",
            "vocoder": "vocoder",
            "tokens": "tokens",
            "lexicon": "lexicon",
            "data_dir": "data_dir",
        },
    ),
}

# Tuning knobs each family understands
_TUNABLE = {
    TtsModelKind.VITS: ("noise_scale", "noise_scale_w", "length_scale"),
    TtsModelKind.MATCHA: ("noise_scale", "length_scale"),
    TtsModelKind.KOKORO: ("length_scale",),
    TtsModelKind.KITTEN: ("length_scale",),
    TtsModelKind.ZIPVOICE: (),
}


def model_config_kwargs(detect: DetectResult, **tuning) -> Dict[str, object]:
    """
    Keyword arguments for the family-specific sherpa-onnx model config.

    Every path field of the family is passed; roles the directory does
    not provide are passed as empty strings.  Tuning values that are
    ``None`` or unsupported by the family are dropped (and logged at
    debug level).
    """
    kind = detect.selected_kind
    if kind not in _SHERPA_MODEL_CONFIGS:
        raise UnsupportedModelError(f"TTS: Unsupported model type {kind.value}")

    _, _, fields = _SHERPA_MODEL_CONFIGS[kind]
    populated = detect.paths.populated()
    kwargs = {field: populated.get(slot, "") for slot, field in fields.items()}

    supported = _TUNABLE[kind]
    for name, value in tuning.items():
        if value is None:
            continue
        if name in supported:
            kwargs[name] = float(value)
        else:
            logger.debug("%s does not use %s; ignoring", kind.value, name)
    return kwargs


class SherpaOnnxBackend(BaseSynthesisBackend):
    """
    Offline TTS via ``sherpa_onnx.OfflineTts``.

    Usage::

        detect = detect_tts_model("models/vits-piper-en_US-amy-low")
        backend = SherpaOnnxBackend(detect, num_threads=2)
        audio = backend.generate("Hello world")
    """

    def __init__(
        self,
        detect: DetectResult,
        num_threads: int = 2,
        debug: bool = False,
        provider: str = "cpu",
        noise_scale: Optional[float] = None,
        noise_scale_w: Optional[float] = None,
        length_scale: Optional[float] = None,
    ):
        """
        Build the runtime session.

        Raises:
            ImportError:           If ``sherpa-onnx`` is not installed.
            UnsupportedModelError: If the kind has no sherpa-onnx config.
            InitializationError:   If the runtime rejects the config.
        """
        try:
            import sherpa_onnx
        except ImportError:
            raise ImportError(
                "sherpa-onnx is required.  Install with: pip install sherpa-onnx"
            )

        kind = detect.selected_kind
        kwargs = model_config_kwargs(
            detect,
            noise_scale=noise_scale,
            noise_scale_w=noise_scale_w,
            length_scale=length_scale,
        )
        field_name, class_name, _ = _SHERPA_MODEL_CONFIGS[kind]

        family_config = getattr(sherpa_onnx, class_name)(**kwargs)
        config = sherpa_onnx.OfflineTtsConfig(
            model=sherpa_onnx.OfflineTtsModelConfig(
                num_threads=num_threads,
                debug=debug,
                provider=provider,
                **{field_name: family_config},
            ),
            max_num_sentences=1,
        )
        if not config.validate():
            raise InitializationError(
                f"TTS: sherpa-onnx rejected the {kind.value} config for {detect.model_dir}"
            )

        logger.info("TTS: Creating OfflineTts instance (%s)...", kind.value)
        self._tts = sherpa_onnx.OfflineTts(config)
        self._kind = kind

    @property
    def sample_rate(self) -> int:
        return int(self._tts.sample_rate) if self._tts is not None else 0

    @property
    def num_speakers(self) -> int:
        return int(self._tts.num_speakers) if self._tts is not None else 0

    @property
    def backend_name(self) -> str:
        return f"sherpa-onnx ({self._kind.value})"

    def generate(
        self,
        text: str,
        sid: int = 0,
        speed: float = 1.0,
        callback: Optional[ChunkCallback] = None,
    ) -> AudioResult:
        if callback is None:
            audio = self._tts.generate(text, sid=sid, speed=speed)
        else:
            audio = self._tts.generate(text, sid=sid, speed=speed, callback=callback)
        return AudioResult(samples=np.asarray(audio.samples), sample_rate=audio.sample_rate)

    def close(self) -> None:
        self._tts = None

    def __repr__(self) -> str:
        return (
            f"SherpaOnnxBackend({self._kind.value}, rate={self.sample_rate}Hz, "
            f"speakers={self.num_speakers})"
        )


def create_sherpa_backend(detect: DetectResult, **options) -> BaseSynthesisBackend:
    """Default ``backend_factory`` for :class:`SynthesisEngine`."""
    return SherpaOnnxBackend(detect, **options)
