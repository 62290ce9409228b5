"""
Exception hierarchy for model detection and speech synthesis.

Detection never raises these for a bad directory; it returns a
:class:`~voicekit.detect.models.DetectResult` with ``ok=False``.  They
are raised by the engines (state and argument violations) and by
:meth:`DetectResult.raise_for_error` for callers that prefer exceptions.
"""


class VoiceKitError(Exception):
    """Base class for all voicekit errors."""


class ModelNotFoundError(VoiceKitError):
    """Model directory or file is absent or unreadable."""


class UnsupportedModelError(VoiceKitError):
    """An explicit model type literal is not a known architecture."""


class MissingRequiredFileError(VoiceKitError):
    """A role required by the selected model kind has no matching file."""

    def __init__(self, message: str, role: str = ""):
        super().__init__(message)
        self.role = role


class InitializationError(VoiceKitError):
    """The inference runtime failed to build a session."""


class InvalidArgumentError(VoiceKitError, ValueError):
    """Out-of-range speaker id, non-positive thread count, empty text..."""


class NotInitializedError(VoiceKitError, RuntimeError):
    """Generation requested before initialize() or after release()."""


class EngineReleasedError(NotInitializedError):
    """The engine was released and cannot be initialised again."""


class SynthesisError(VoiceKitError):
    """The runtime returned no audio for a valid request."""


# error_code string carried by failed DetectResults -> exception type
ERROR_CODES = {
    "not_found": ModelNotFoundError,
    "unsupported": UnsupportedModelError,
    "missing_required_file": MissingRequiredFileError,
    "no_model_detected": UnsupportedModelError,
}
