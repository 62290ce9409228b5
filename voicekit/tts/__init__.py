"""TTS synthesis engine, inference backends, and audio export."""

from .audio import AudioResult
from .audio_builder import AudioBuilder
from .backend import BaseSynthesisBackend, SherpaOnnxBackend, model_config_kwargs
from .engine import EngineState, SynthesisEngine

__all__ = [
    "AudioBuilder",
    "AudioResult",
    "BaseSynthesisBackend",
    "EngineState",
    "SherpaOnnxBackend",
    "SynthesisEngine",
    "model_config_kwargs",
]
