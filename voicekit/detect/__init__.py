"""Model-artifact scanning, classification and path resolution."""

from .classifier import AUTO, detect_stt_model, detect_tts_model, matching_kinds
from .models import (
    DetectedModel,
    DetectResult,
    SttModelKind,
    SttModelPaths,
    TtsModelKind,
    TtsModelPaths,
)
from .resolver import choose_artifact, resolve_paths
from .rules import (
    MARKER_KEYWORDS,
    ROLE_PATTERNS,
    STT_PRECEDENCE,
    STT_RULES,
    TTS_PRECEDENCE,
    TTS_RULES,
    KindRule,
    RolePattern,
)
from .scanner import Artifact, ScanResult, scan_directory

__all__ = [
    "AUTO",
    "Artifact",
    "DetectResult",
    "DetectedModel",
    "KindRule",
    "MARKER_KEYWORDS",
    "ROLE_PATTERNS",
    "RolePattern",
    "STT_PRECEDENCE",
    "STT_RULES",
    "ScanResult",
    "SttModelKind",
    "SttModelPaths",
    "TTS_PRECEDENCE",
    "TTS_RULES",
    "TtsModelKind",
    "TtsModelPaths",
    "choose_artifact",
    "detect_stt_model",
    "detect_tts_model",
    "matching_kinds",
    "resolve_paths",
    "scan_directory",
]
