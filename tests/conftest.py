"""Shared fixtures: fake model directories and in-process fake backends."""

import threading
import time
from pathlib import Path

import numpy as np
import pytest

from voicekit.stt.recognizer import BaseRecognizerBackend
from voicekit.tts.audio import AudioResult
from voicekit.tts.backend import BaseSynthesisBackend

# ------------------------------------------------------------------
# Model directory layouts (directory name, files, sub-directories)
# ------------------------------------------------------------------

VITS_PIPER = (
    "vits-piper-en_US-amy-low",
    ["en_US-amy-low.onnx", "en_US-amy-low.onnx.json", "tokens.txt", "MODEL_CARD"],
    ["espeak-ng-data"],
)
VITS_PLAIN = (
    "vits-ljs",
    ["vits-ljs.onnx", "vits-ljs.int8.onnx", "tokens.txt", "lexicon.txt"],
    [],
)
KOKORO = (
    "kokoro-en-v0_19",
    ["model.onnx", "voices.bin", "tokens.txt", "LICENSE"],
    ["espeak-ng-data"],
)
KITTEN = (
    "kitten-nano-en-v0_1-fp16",
    ["model.fp16.onnx", "voices.bin", "tokens.txt"],
    ["espeak-ng-data"],
)
MATCHA = (
    "matcha-icefall-en_US-ljspeech",
    ["model-steps-3.onnx", "vocos-22khz-univ.onnx", "tokens.txt"],
    ["espeak-ng-data"],
)
ZIPVOICE = (
    "sherpa-onnx-zipvoice-distill-zh-en-emilia",
    ["text_encoder.onnx", "fm_decoder.onnx", "vocos_24khz.onnx", "tokens.txt", "lexicon.txt"],
    ["espeak-ng-data"],
)

TRANSDUCER = (
    "sherpa-onnx-zipformer-en-2023-06-26",
    [
        "encoder-epoch-99-avg-1.onnx",
        "encoder-epoch-99-avg-1.int8.onnx",
        "decoder-epoch-99-avg-1.onnx",
        "joiner-epoch-99-avg-1.onnx",
        "joiner-epoch-99-avg-1.int8.onnx",
        "tokens.txt",
    ],
    [],
)
PARAFORMER = (
    "sherpa-onnx-paraformer-zh-2023-09-14",
    ["model.onnx", "model.int8.onnx", "tokens.txt"],
    [],
)
NEMO_CTC = ("sherpa-onnx-nemo-ctc-en-citrinet-512", ["model.onnx", "tokens.txt"], [])
WENET_CTC = ("sherpa-onnx-en-wenet-librispeech", ["model.onnx", "tokens.txt"], [])
SENSE_VOICE = (
    "sherpa-onnx-sense-voice-zh-en-ja-ko-yue-2024-07-17",
    ["model.int8.onnx", "tokens.txt"],
    [],
)
ZIPFORMER_CTC = ("sherpa-onnx-zipformer-ctc-en-2023-10-02", ["model.onnx", "tokens.txt"], [])
WHISPER = (
    "sherpa-onnx-whisper-tiny.en",
    [
        "tiny.en-encoder.onnx",
        "tiny.en-encoder.int8.onnx",
        "tiny.en-decoder.onnx",
        "tiny.en-decoder.int8.onnx",
        "tiny.en-tokens.txt",
    ],
    [],
)
FUNASR_NANO = (
    "sherpa-onnx-funasr-nano-int8-2025-12-30",
    ["encoder_adaptor.onnx", "llm.onnx", "embedding.onnx"],
    ["Qwen3-0.6B"],
)


def build_model_dir(root: Path, layout) -> Path:
    name, files, dirs = layout
    model_dir = root / name
    model_dir.mkdir(parents=True, exist_ok=True)
    for file_name in files:
        (model_dir / file_name).write_bytes(b"")
    for sub in dirs:
        (model_dir / sub).mkdir(exist_ok=True)
    return model_dir


@pytest.fixture()
def make_model_dir(tmp_path):
    """Factory: ``make_model_dir(LAYOUT)`` -> path of a populated directory."""

    def _make(layout):
        return build_model_dir(tmp_path, layout)

    return _make


# ------------------------------------------------------------------
# Fake synthesis backend
# ------------------------------------------------------------------


class FakeBackend(BaseSynthesisBackend):
    """
    Deterministic stand-in for the sherpa-onnx runtime.

    Produces *chunks* blocks of constant-valued samples (0.1, 0.2, ...)
    so temporal order can be checked from the values alone.
    """

    def __init__(
        self,
        detect,
        options,
        sample_rate=16000,
        num_speakers=1,
        chunks=3,
        chunk_size=100,
        stream=True,
        progress=None,
        ignore_stop=False,
        delay=0.0,
    ):
        self.detect = detect
        self.options = options
        self._sample_rate = sample_rate
        self._num_speakers = num_speakers
        self._chunks = chunks
        self._chunk_size = chunk_size
        self._stream = stream
        self._progress = progress
        self._ignore_stop = ignore_stop
        self._delay = delay
        self.calls = []
        self.closed = False
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()

    @property
    def sample_rate(self):
        return self._sample_rate

    @property
    def num_speakers(self):
        return self._num_speakers

    def generate(self, text, sid=0, speed=1.0, callback=None):
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            self.calls.append((text, sid, speed))
            if self._delay:
                time.sleep(self._delay)
            size = max(1, int(self._chunk_size / speed))
            produced = []
            for i in range(self._chunks):
                part = np.full(size, 0.1 * (i + 1), dtype=np.float32)
                produced.append(part)
                if callback is not None and self._stream:
                    progress = (
                        self._progress[i] if self._progress else (i + 1) / self._chunks
                    )
                    if callback(part, progress) == 0 and not self._ignore_stop:
                        break
            return AudioResult(np.concatenate(produced), self._sample_rate)
        finally:
            with self._guard:
                self.active -= 1

    def close(self):
        self.closed = True


class FakeFactory:
    """``backend_factory`` that records every backend it builds."""

    def __init__(self, **backend_kwargs):
        self.backend_kwargs = backend_kwargs
        self.created = []

    def __call__(self, detect, **options):
        backend = FakeBackend(detect, options, **self.backend_kwargs)
        self.created.append(backend)
        return backend

    @property
    def last(self):
        return self.created[-1]


@pytest.fixture()
def fake_factory():
    return FakeFactory()


# ------------------------------------------------------------------
# Fake recognizer backend
# ------------------------------------------------------------------


class FakeRecognizerBackend(BaseRecognizerBackend):
    def __init__(self, detect, **options):
        self.detect = detect
        self.options = options
        self.closed = False

    def transcribe(self, samples, sample_rate):
        return f"{self.detect.selected_kind.value}:{len(samples)}@{sample_rate}"

    def close(self):
        self.closed = True
