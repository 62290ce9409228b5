"""
Detection table: file-role vocabulary and per-kind signatures.

This module is plain data.  It defines what the
scanner tags and what each architecture needs, following the file
naming conventions of sherpa-onnx model releases:

* ``ROLE_PATTERNS`` maps a role name to the filename substrings and
  extensions that identify it.
* ``MARKER_KEYWORDS`` lists architecture hints searched for in the
  directory name and in file names.  Single-file layouts (paraformer,
  NeMo/WeNet CTC, SenseVoice...) are identical by role and differ only
  by these hints.
* ``STT_RULES`` / ``TTS_RULES`` list kinds in precedence order.  The
  classifier selects the first rule whose roles and markers are all
  present.
"""

from dataclasses import dataclass, field
from typing import Dict, Tuple

from .models import SttModelKind, TtsModelKind

# ------------------------------------------------------------------
# Roles
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RolePattern:
    """
    How to recognise one file role.

    Attributes:
        keywords:   Lower-case substrings; any one matches.  Empty means
                    "any name" (subject to *exclude*).
        extensions: Accepted name endings (checked with ``endswith``).
        exclude:    Substrings that veto the role even if a keyword matched.
        is_dir:     Role refers to a directory rather than a file.
    """

    keywords: Tuple[str, ...]
    extensions: Tuple[str, ...] = ()
    exclude: Tuple[str, ...] = ()
    is_dir: bool = False

    def matches(self, name: str, is_dir: bool) -> bool:
        if is_dir != self.is_dir:
            return False
        lowered = name.lower()
        if self.extensions and not lowered.endswith(self.extensions):
            return False
        if any(word in lowered for word in self.exclude):
            return False
        if not self.keywords:
            return True
        return any(word in lowered for word in self.keywords)


# Substrings owned by a specific .onnx role; a generic "model" file has none
_ONNX_ROLE_WORDS = (
    "encoder",
    "decoder",
    "joiner",
    "vocoder",
    "vocos",
    "hifigan",
    "model-steps",
    "model_steps",
    "acoustic",
    "llm",
    "embedding",
)

ROLE_PATTERNS: Dict[str, RolePattern] = {
    # Transducer / whisper halves
    "encoder": RolePattern(
        ("encoder",), (".onnx",), exclude=("text_encoder", "encoder_adaptor")
    ),
    "decoder": RolePattern(("decoder",), (".onnx",), exclude=("fm_decoder",)),
    "joiner": RolePattern(("joiner",), (".onnx",)),
    # Single-file acoustic models (CTC, paraformer, vits, kokoro...)
    "model": RolePattern((), (".onnx",), exclude=_ONNX_ROLE_WORDS),
    # Two-stage TTS
    "acoustic_model": RolePattern(("model-steps", "model_steps", "acoustic"), (".onnx",)),
    "vocoder": RolePattern(("vocoder", "vocos", "hifigan"), (".onnx",)),
    "text_encoder": RolePattern(("text_encoder",), (".onnx",)),
    "fm_decoder": RolePattern(("fm_decoder",), (".onnx",)),
    # FunASR nano
    "encoder_adaptor": RolePattern(("encoder_adaptor",), (".onnx",)),
    "llm": RolePattern(("llm",), (".onnx",)),
    "embedding": RolePattern(("embedding",), (".onnx",)),
    # Text side
    "tokens": RolePattern(("tokens",), (".txt",)),
    "lexicon": RolePattern(("lexicon",), (".txt",)),
    "voices": RolePattern(("voices",), (".bin",)),
    "piper_config": RolePattern((), (".onnx.json",)),
    # Directories
    "data_dir": RolePattern(("espeak-ng-data",), is_dir=True),
    "dict_dir": RolePattern(("dict",), is_dir=True, exclude=("espeak",)),
    "tokenizer": RolePattern(("qwen", "tokenizer"), is_dir=True),
}

# Quantisation tags looked for in file names
INT8_KEYWORD = "int8"
FP16_KEYWORD = "fp16"

# ------------------------------------------------------------------
# Architecture markers
# ------------------------------------------------------------------

MARKER_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "paraformer": ("paraformer",),
    "nemo": ("nemo",),
    "wenet": ("wenet",),
    "sense_voice": ("sense-voice", "sense_voice", "sensevoice"),
    "zipformer": ("zipformer",),
    "whisper": ("whisper",),
    "funasr": ("funasr", "fun-asr", "fun_asr"),
    "kitten": ("kitten",),
}

# ------------------------------------------------------------------
# Kind signatures
# ------------------------------------------------------------------


@dataclass(frozen=True)
class KindRule:
    """
    Signature of one model architecture.

    Attributes:
        kind:            The architecture.
        required:        Roles that must all resolve.
        optional:        Roles resolved when present.
        markers:         Hints that must be present for auto-detection.
                         Ignored when the kind is forced explicitly.
        slots:           Role -> ``ModelPaths`` field the path lands in.
        tokens_required: Default tokens policy for the kind.
    """

    kind: object
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()
    markers: Tuple[str, ...] = ()
    slots: Dict[str, str] = field(default_factory=dict)
    tokens_required: bool = True

    def slot_for(self, role: str) -> str:
        return self.slots.get(role, role)

    @property
    def roles(self) -> Tuple[str, ...]:
        return self.required + self.optional


def _single_file(kind, marker: str, slot: str) -> KindRule:
    return KindRule(
        kind=kind,
        required=("model", "tokens"),
        markers=(marker,),
        slots={"model": slot},
    )


STT_RULES: Tuple[KindRule, ...] = (
    KindRule(
        kind=SttModelKind.TRANSDUCER,
        required=("encoder", "decoder", "joiner", "tokens"),
    ),
    _single_file(SttModelKind.PARAFORMER, "paraformer", "paraformer"),
    _single_file(SttModelKind.NEMO_CTC, "nemo", "nemo_ctc"),
    _single_file(SttModelKind.WENET_CTC, "wenet", "wenet_ctc"),
    _single_file(SttModelKind.SENSE_VOICE, "sense_voice", "sense_voice"),
    _single_file(SttModelKind.ZIPFORMER_CTC, "zipformer", "zipformer_ctc"),
    KindRule(
        kind=SttModelKind.WHISPER,
        required=("encoder", "decoder", "tokens"),
        markers=("whisper",),
        slots={"encoder": "whisper_encoder", "decoder": "whisper_decoder"},
    ),
    KindRule(
        kind=SttModelKind.FUNASR_NANO,
        required=("encoder_adaptor", "llm", "embedding", "tokenizer"),
        markers=("funasr",),
        tokens_required=False,
    ),
)

# Most specific layout first: a kokoro directory also satisfies vits
TTS_RULES: Tuple[KindRule, ...] = (
    KindRule(
        kind=TtsModelKind.ZIPVOICE,
        required=("text_encoder", "fm_decoder", "vocoder", "tokens"),
        optional=("lexicon", "data_dir"),
    ),
    KindRule(
        kind=TtsModelKind.KITTEN,
        required=("model", "voices", "tokens", "data_dir"),
        markers=("kitten",),
    ),
    KindRule(
        kind=TtsModelKind.KOKORO,
        required=("model", "voices", "tokens", "data_dir"),
        optional=("lexicon", "dict_dir"),
    ),
    KindRule(
        kind=TtsModelKind.MATCHA,
        required=("acoustic_model", "vocoder", "tokens"),
        optional=("lexicon", "data_dir", "dict_dir"),
    ),
    KindRule(
        kind=TtsModelKind.VITS,
        required=("model", "tokens"),
        optional=("lexicon", "data_dir", "dict_dir"),
    ),
)

STT_PRECEDENCE = tuple(rule.kind for rule in STT_RULES)
TTS_PRECEDENCE = tuple(rule.kind for rule in TTS_RULES)


def rule_for(kind) -> KindRule:
    """Look up the signature of *kind* in either table."""
    for rule in STT_RULES + TTS_RULES:
        if rule.kind is kind:
            return rule
    raise KeyError(kind)
