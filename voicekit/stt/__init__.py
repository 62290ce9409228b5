"""Offline speech recognition."""

from .recognizer import (
    BaseRecognizerBackend,
    SherpaOnnxRecognizerBackend,
    SpeechRecognizer,
    recognizer_kwargs,
)

__all__ = [
    "BaseRecognizerBackend",
    "SherpaOnnxRecognizerBackend",
    "SpeechRecognizer",
    "recognizer_kwargs",
]
