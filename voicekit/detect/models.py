"""
Data models for model-artifact detection.

``SttModelKind`` / ``TtsModelKind`` are the closed sets of architecture
families.  ``SttModelPaths`` / ``TtsModelPaths`` hold one slot per file
role; an empty slot means the role does not apply to the selected kind.
``DetectResult`` is the immutable outcome of a detection call.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple, Union

from voicekit.errors import ERROR_CODES, MissingRequiredFileError, VoiceKitError


def _normalize_literal(value: str) -> str:
    return value.strip().lower().replace("-", "_")


class _ModelKind(Enum):
    @classmethod
    def parse(cls, literal: Optional[str]):
        """
        Map a model-type literal to a kind.

        Separators (``-``/``_``) and case are ignored.  Unrecognised
        literals map to ``UNKNOWN``.
        """
        if not literal:
            return cls.UNKNOWN
        key = _normalize_literal(literal)
        for kind in cls:
            if kind.value == key:
                return kind
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        return self.value


class SttModelKind(_ModelKind):
    """Speech-to-text architecture families."""

    UNKNOWN = "unknown"
    TRANSDUCER = "transducer"
    PARAFORMER = "paraformer"
    NEMO_CTC = "nemo_ctc"
    WENET_CTC = "wenet_ctc"
    SENSE_VOICE = "sense_voice"
    ZIPFORMER_CTC = "zipformer_ctc"
    WHISPER = "whisper"
    FUNASR_NANO = "funasr_nano"


class TtsModelKind(_ModelKind):
    """Text-to-speech architecture families."""

    UNKNOWN = "unknown"
    VITS = "vits"
    MATCHA = "matcha"
    KOKORO = "kokoro"
    KITTEN = "kitten"
    ZIPVOICE = "zipvoice"


ModelKind = Union[SttModelKind, TtsModelKind]


@dataclass(frozen=True)
class DetectedModel:
    """A model architecture whose file signature was found in a directory."""

    type: str
    model_dir: str


@dataclass(frozen=True)
class SttModelPaths:
    """Resolved file paths for a speech-to-text model."""

    encoder: str = ""
    decoder: str = ""
    joiner: str = ""
    paraformer: str = ""
    nemo_ctc: str = ""
    wenet_ctc: str = ""
    sense_voice: str = ""
    zipformer_ctc: str = ""
    whisper_encoder: str = ""
    whisper_decoder: str = ""
    encoder_adaptor: str = ""
    llm: str = ""
    embedding: str = ""
    tokenizer: str = ""
    tokens: str = ""

    def populated(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v}


@dataclass(frozen=True)
class TtsModelPaths:
    """Resolved file paths for a text-to-speech model."""

    model: str = ""
    acoustic_model: str = ""
    vocoder: str = ""
    text_encoder: str = ""
    fm_decoder: str = ""
    voices: str = ""
    tokens: str = ""
    lexicon: str = ""
    data_dir: str = ""
    dict_dir: str = ""

    def populated(self) -> Dict[str, str]:
        return {k: v for k, v in asdict(self).items() if v}


ModelPaths = Union[SttModelPaths, TtsModelPaths]


@dataclass(frozen=True)
class DetectResult:
    """
    Outcome of a detection call.

    Attributes:
        ok:              ``True`` when a kind was selected and every
                         required role resolved to an existing entry.
        error:           Diagnostic message, empty iff *ok*.
        error_code:      Machine-readable failure category (see
                         :data:`voicekit.errors.ERROR_CODES`), empty iff *ok*.
        detected_models: Every kind whose signature matched, in
                         precedence order (not only the selected one).
        selected_kind:   The chosen kind (``UNKNOWN`` on failure).
        tokens_required: Whether the runtime needs a ``tokens`` file for
                         the selected kind.
        paths:           Resolved paths for the selected kind.
        model_dir:       The directory that was inspected.
        missing_role:    Required role that had no matching entry, set
                         when *error_code* is ``missing_required_file``.
    """

    ok: bool
    selected_kind: ModelKind
    paths: ModelPaths
    error: str = ""
    error_code: str = ""
    detected_models: Tuple[DetectedModel, ...] = field(default_factory=tuple)
    tokens_required: bool = True
    model_dir: str = ""
    missing_role: str = ""

    @property
    def is_stt(self) -> bool:
        return isinstance(self.selected_kind, SttModelKind)

    def raise_for_error(self) -> "DetectResult":
        """Raise the exception matching *error_code* if detection failed."""
        if self.ok:
            return self
        exc_type = ERROR_CODES.get(self.error_code, VoiceKitError)
        if exc_type is MissingRequiredFileError:
            raise MissingRequiredFileError(self.error, role=self.missing_role)
        raise exc_type(self.error)

    def to_dict(self) -> dict:
        """JSON-friendly view for diagnostics and model pickers."""
        return {
            "ok": self.ok,
            "error": self.error,
            "error_code": self.error_code,
            "model_dir": self.model_dir,
            "missing_role": self.missing_role,
            "selected_kind": self.selected_kind.value,
            "tokens_required": self.tokens_required,
            "detected_models": [asdict(m) for m in self.detected_models],
            "paths": self.paths.populated(),
        }

    def __repr__(self) -> str:
        if not self.ok:
            return f"DetectResult(ok=False, error={self.error!r})"
        found = ", ".join(m.type for m in self.detected_models)
        return (
            f"DetectResult(ok=True, kind={self.selected_kind.value}, "
            f"detected=[{found}])"
        )
