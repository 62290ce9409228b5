"""
voicekit: offline speech-model detection and streaming synthesis.

Scans a directory of ONNX speech-model files, decides which
architecture it holds, resolves the files the runtime needs, and drives
a text-to-speech engine with blocking and streaming generation.
"""

from .capability import (
    LocalSpeechCapability,
    RecognitionEvent,
    SpeechCapability,
    SpeechEvent,
    SpeechEventType,
    SpeechOptions,
)
from .config import SynthesisConfig
from .detect import (
    DetectedModel,
    DetectResult,
    SttModelKind,
    TtsModelKind,
    detect_stt_model,
    detect_tts_model,
)
from .stt import SpeechRecognizer
from .tts import AudioBuilder, AudioResult, EngineState, SynthesisEngine

__version__ = "0.1.0"

__all__ = [
    "AudioBuilder",
    "AudioResult",
    "DetectResult",
    "DetectedModel",
    "EngineState",
    "LocalSpeechCapability",
    "RecognitionEvent",
    "SpeechCapability",
    "SpeechEvent",
    "SpeechEventType",
    "SpeechOptions",
    "SpeechRecognizer",
    "SttModelKind",
    "SynthesisConfig",
    "SynthesisEngine",
    "TtsModelKind",
    "detect_stt_model",
    "detect_tts_model",
]
