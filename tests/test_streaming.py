import numpy as np
import pytest

from voicekit.errors import InvalidArgumentError, SynthesisError
from voicekit.tts import AudioResult, SynthesisEngine

from conftest import KOKORO, FakeFactory


class Recorder:
    """Stream callback that records every call and can stop after *stop_after*."""

    def __init__(self, stop_after=None, verdict=1):
        self.stop_after = stop_after
        self.verdict = verdict
        self.calls = []

    def __call__(self, chunk, length, progress):
        self.calls.append((chunk.copy(), length, progress))
        if self.stop_after is not None and len(self.calls) >= self.stop_after:
            return 0
        return self.verdict

    @property
    def progress(self):
        return [p for _, _, p in self.calls]


@pytest.fixture()
def make_engine(make_model_dir):
    model_dir = make_model_dir(KOKORO)
    engines = []

    def _make(**backend_kwargs):
        factory = FakeFactory(**backend_kwargs)
        engine = SynthesisEngine(backend_factory=factory)
        engine.initialize(model_dir)
        engines.append(engine)
        return engine, factory.last

    yield _make
    for engine in engines:
        engine.release()


def test_complete_stream(make_engine):
    engine, _ = make_engine(chunks=4)
    recorder = Recorder()

    assert engine.generate_stream("Hello world", callback=recorder) is True

    assert len(recorder.calls) == 4
    assert recorder.progress[-1] == 1.0
    assert recorder.progress == sorted(recorder.progress)
    assert all(0.0 <= p <= 1.0 for p in recorder.progress)


def test_chunks_arrive_in_playback_order(make_engine):
    engine, _ = make_engine(chunks=3, chunk_size=10)
    recorder = Recorder()
    engine.generate_stream("Hello", callback=recorder)

    firsts = [float(chunk[0]) for chunk, _, _ in recorder.calls]
    assert firsts == pytest.approx([0.1, 0.2, 0.3])
    for chunk, length, _ in recorder.calls:
        assert length == chunk.size == 10
        assert chunk.dtype == np.float32


def test_streamed_audio_matches_blocking_output(make_engine):
    engine, _ = make_engine(chunks=3, chunk_size=20)
    recorder = Recorder()
    engine.generate_stream("Hello", callback=recorder)

    streamed = np.concatenate([chunk for chunk, _, _ in recorder.calls])
    np.testing.assert_array_equal(streamed, engine.generate("Hello").samples)


def test_cancel_stops_callbacks(make_engine):
    engine, backend = make_engine(chunks=5)
    recorder = Recorder(stop_after=2)

    assert engine.generate_stream("Hello", callback=recorder) is False
    assert len(recorder.calls) == 2
    # runtime was told to stop early
    assert len(backend.calls) == 1


def test_cancel_on_first_chunk(make_engine):
    engine, _ = make_engine(chunks=3)
    recorder = Recorder(stop_after=1)

    assert engine.generate_stream("Hello", callback=recorder) is False
    assert len(recorder.calls) == 1


def test_cancel_on_final_chunk_reports_false(make_engine):
    engine, _ = make_engine(chunks=3)
    recorder = Recorder(stop_after=3)

    assert engine.generate_stream("Hello", callback=recorder) is False
    assert len(recorder.calls) == 3


@pytest.mark.parametrize("verdict", [0, -1, 0.0])
def test_non_positive_return_cancels(make_engine, verdict):
    engine, _ = make_engine(chunks=3)
    recorder = Recorder(verdict=verdict)

    assert engine.generate_stream("Hello", callback=recorder) is False
    assert len(recorder.calls) == 1


def test_returning_none_continues(make_engine):
    engine, _ = make_engine(chunks=3)
    recorder = Recorder(verdict=None)

    assert engine.generate_stream("Hello", callback=recorder) is True
    assert len(recorder.calls) == 3


def test_runtime_ignoring_stop_request(make_engine):
    engine, _ = make_engine(chunks=6, ignore_stop=True)
    recorder = Recorder(stop_after=2)

    assert engine.generate_stream("Hello", callback=recorder) is False
    assert len(recorder.calls) == 2


def test_non_streaming_runtime_delivers_one_chunk(make_engine):
    engine, _ = make_engine(chunks=3, chunk_size=50, stream=False)
    recorder = Recorder()

    assert engine.generate_stream("Hello", callback=recorder) is True
    assert len(recorder.calls) == 1
    chunk, length, progress = recorder.calls[0]
    assert length == 150
    assert progress == 1.0


def test_erratic_progress_is_clamped(make_engine):
    engine, _ = make_engine(chunks=4, progress=[0.5, 0.2, 1.7, 0.9])
    recorder = Recorder()
    engine.generate_stream("Hello", callback=recorder)

    assert recorder.progress == [0.5, 0.5, 1.0, 1.0]


def test_negative_progress_is_clamped(make_engine):
    engine, _ = make_engine(chunks=2, progress=[-0.4, 0.3])
    recorder = Recorder()
    engine.generate_stream("Hello", callback=recorder)

    assert recorder.progress == [0.0, 1.0]


def test_stream_requires_callback(make_engine):
    engine, _ = make_engine()
    with pytest.raises(InvalidArgumentError):
        engine.generate_stream("Hello")


def test_stream_validates_arguments(make_engine):
    engine, backend = make_engine()
    recorder = Recorder()

    with pytest.raises(InvalidArgumentError):
        engine.generate_stream("", callback=recorder)
    with pytest.raises(InvalidArgumentError):
        engine.generate_stream("Hello", speed=0, callback=recorder)
    assert recorder.calls == []
    assert backend.calls == []


def test_runtime_error_mid_stream(make_engine, monkeypatch):
    engine, backend = make_engine()

    def failing(text, sid=0, speed=1.0, callback=None):
        callback(np.ones(5, dtype=np.float32), 0.5)
        raise RuntimeError("decoder crashed")

    monkeypatch.setattr(backend, "generate", failing)
    with pytest.raises(SynthesisError, match="decoder crashed"):
        engine.generate_stream("Hello", callback=Recorder())


def test_runtime_error_after_cancel_is_a_cancel(make_engine, monkeypatch):
    engine, backend = make_engine()

    def failing(text, sid=0, speed=1.0, callback=None):
        callback(np.ones(5, dtype=np.float32), 0.3)
        callback(np.ones(5, dtype=np.float32), 0.6)
        raise RuntimeError("aborted")

    monkeypatch.setattr(backend, "generate", failing)
    assert engine.generate_stream("Hello", callback=Recorder(stop_after=1)) is False


def test_empty_runtime_output_is_an_error(make_engine, monkeypatch):
    engine, backend = make_engine()
    monkeypatch.setattr(
        backend,
        "generate",
        lambda *a, **k: AudioResult(np.zeros(0, dtype=np.float32), 16000),
    )
    recorder = Recorder()
    with pytest.raises(SynthesisError):
        engine.generate_stream("Hello", callback=recorder)
    assert recorder.calls == []


def test_empty_chunks_are_skipped(make_engine, monkeypatch):
    engine, backend = make_engine()

    def sparse(text, sid=0, speed=1.0, callback=None):
        callback(np.zeros(0, dtype=np.float32), 0.1)
        callback(np.ones(4, dtype=np.float32), 0.5)
        callback(np.zeros(0, dtype=np.float32), 0.7)
        return AudioResult(np.ones(4, dtype=np.float32), 16000)

    monkeypatch.setattr(backend, "generate", sparse)
    recorder = Recorder()
    assert engine.generate_stream("Hello", callback=recorder) is True
    assert [(length, p) for _, length, p in recorder.calls] == [(4, 1.0)]


def test_chunks_are_copies(make_engine, monkeypatch):
    engine, backend = make_engine()
    buffer = np.ones(3, dtype=np.float32)

    def reusing(text, sid=0, speed=1.0, callback=None):
        callback(buffer, 0.5)
        buffer[:] = 2.0
        callback(buffer, 0.9)
        return AudioResult(np.ones(6, dtype=np.float32), 16000)

    monkeypatch.setattr(backend, "generate", reusing)
    recorder = Recorder()
    engine.generate_stream("Hello", callback=recorder)

    assert [float(chunk[0]) for chunk, _, _ in recorder.calls] == [1.0, 2.0]
