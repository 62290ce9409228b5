import numpy as np
import pytest

from voicekit.errors import (
    EngineReleasedError,
    InitializationError,
    InvalidArgumentError,
    NotInitializedError,
)
from voicekit.stt import SpeechRecognizer

from conftest import PARAFORMER, WHISPER, FakeRecognizerBackend


@pytest.fixture()
def recognizer():
    recognizer = SpeechRecognizer(backend_factory=FakeRecognizerBackend)
    yield recognizer
    recognizer.release()


def test_recognize_before_initialize(recognizer):
    with pytest.raises(NotInitializedError):
        recognizer.recognize(np.ones(10, dtype=np.float32), 16000)


def test_initialize_and_recognize(recognizer, make_model_dir):
    result = recognizer.initialize(make_model_dir(WHISPER), num_threads=3)

    assert result.ok
    assert recognizer.is_initialized
    assert recognizer.detect_result.selected_kind.value == "whisper"
    assert recognizer.recognize(np.zeros(480, dtype=np.float32), 16000) == "whisper:480@16000"


def test_options_reach_backend(make_model_dir):
    created = []

    def factory(detect, **options):
        backend = FakeRecognizerBackend(detect, **options)
        created.append(backend)
        return backend

    recognizer = SpeechRecognizer(backend_factory=factory)
    recognizer.initialize(make_model_dir(WHISPER), num_threads=3, provider="cuda")

    assert created[0].options == {"num_threads": 3, "debug": False, "provider": "cuda"}


def test_forced_model_type(recognizer, make_model_dir):
    result = recognizer.initialize(make_model_dir(PARAFORMER), model_type="nemo_ctc")
    assert result.selected_kind.value == "nemo_ctc"


def test_bad_directory(recognizer, tmp_path):
    result = recognizer.initialize(tmp_path / "missing")

    assert not result.ok
    assert not recognizer.is_initialized


def test_invalid_arguments(recognizer, make_model_dir):
    with pytest.raises(InvalidArgumentError):
        recognizer.initialize(make_model_dir(WHISPER), num_threads=0)

    recognizer.initialize(make_model_dir(WHISPER))
    with pytest.raises(InvalidArgumentError):
        recognizer.recognize([], 16000)
    with pytest.raises(InvalidArgumentError):
        recognizer.recognize(np.ones(10), 0)


def test_runtime_failure(make_model_dir):
    def broken(detect, **options):
        raise RuntimeError("missing onnx op")

    recognizer = SpeechRecognizer(backend_factory=broken)
    with pytest.raises(InitializationError, match="missing onnx op"):
        recognizer.initialize(make_model_dir(WHISPER))


def test_release(recognizer, make_model_dir):
    recognizer.initialize(make_model_dir(WHISPER))
    recognizer.release()
    recognizer.release()

    assert not recognizer.is_initialized
    with pytest.raises(NotInitializedError):
        recognizer.recognize(np.ones(10, dtype=np.float32), 16000)
    with pytest.raises(EngineReleasedError):
        recognizer.initialize(make_model_dir(PARAFORMER))
