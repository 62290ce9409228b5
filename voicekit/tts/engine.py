"""
Streaming speech-synthesis engine.

Owns one loaded inference session and exposes blocking
(:meth:`SynthesisEngine.generate`) and incremental, cancellable
(:meth:`SynthesisEngine.generate_stream`) text-to-audio generation.

Lifecycle::

    UNINITIALIZED --initialize()--> INITIALIZED --release()--> RELEASED
    UNINITIALIZED --release()-----------------------------> RELEASED

Calling initialize() on an INITIALIZED engine replaces the model.
RELEASED is terminal.

All state-changing calls take an internal lock, so overlapping calls
from several threads run one after another.  Nothing runs in the
background; every call blocks its caller until done.
"""

import logging
import threading
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple, Union

import numpy as np

from voicekit.config import SynthesisConfig
from voicekit.detect import AUTO, DetectResult, detect_tts_model
from voicekit.errors import (
    EngineReleasedError,
    InitializationError,
    InvalidArgumentError,
    NotInitializedError,
    SynthesisError,
    VoiceKitError,
)

from .audio import AudioResult
from .backend import BaseSynthesisBackend, create_sherpa_backend

logger = logging.getLogger(__name__)

# (chunk, chunk_length, progress) -> positive to continue, <= 0 to stop
StreamCallback = Callable[[np.ndarray, int, float], Optional[float]]

BackendFactory = Callable[..., BaseSynthesisBackend]


class EngineState(Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    RELEASED = "released"


class _ChunkRelay:
    """
    Forwards runtime chunks to a user callback.

    Delivery lags the runtime by one chunk so the last chunk can be
    reported with progress exactly 1.0 once generation has finished.
    Progress is clamped to be non-decreasing and within [0, 1].
    """

    def __init__(self, callback: StreamCallback):
        self._callback = callback
        self._pending: Optional[Tuple[np.ndarray, float]] = None
        self._progress = 0.0
        self.cancelled = False
        self.delivered = 0

    def on_chunk(self, samples, progress: float) -> int:
        if self.cancelled:
            return 0
        # the runtime may reuse its buffer after we return
        chunk = np.array(samples, dtype=np.float32, copy=True).reshape(-1)
        if chunk.size == 0:
            return 1

        progress = min(max(float(progress), self._progress), 1.0)
        self._progress = progress
        if self._pending is not None and not self._emit(*self._pending):
            self._pending = None
            return 0
        self._pending = (chunk, progress)
        return 1

    def finish(self, audio: Optional[AudioResult]) -> bool:
        if self.cancelled:
            return False
        if self._pending is None:
            # runtime did not stream; hand over the whole clip at once
            if audio is None or audio.is_empty:
                raise SynthesisError("TTS: Generated empty audio")
            self._pending = (audio.samples, 1.0)
        chunk, _ = self._pending
        self._pending = None
        return self._emit(chunk, 1.0)

    def _emit(self, chunk: np.ndarray, progress: float) -> bool:
        verdict = self._callback(chunk, int(chunk.size), progress)
        self.delivered += 1
        # a callback that returns nothing keeps the stream going
        if verdict is not None and verdict <= 0:
            self.cancelled = True
            logger.info("TTS: Stream cancelled by callback after %d chunks", self.delivered)
            return False
        return True


class SynthesisEngine:
    """
    Text-to-speech engine over a detected model directory.

    Usage::

        engine = SynthesisEngine()
        result = engine.initialize("models/kokoro-en-v0_19", num_threads=2)
        if not result.ok:
            print(result.error)
        audio = engine.generate("Hello world", sid=0, speed=1.0)
        audio.save_wav("hello.wav")
        engine.release()

    The inference runtime is built by *backend_factory*, called as
    ``backend_factory(detect_result, num_threads=..., debug=...,
    provider=..., noise_scale=..., noise_scale_w=..., length_scale=...)``.
    It defaults to sherpa-onnx.
    """

    def __init__(self, backend_factory: Optional[BackendFactory] = None):
        self._backend_factory = backend_factory or create_sherpa_backend
        self._lock = threading.RLock()
        self._state = EngineState.UNINITIALIZED
        self._backend: Optional[BaseSynthesisBackend] = None
        self._detect: Optional[DetectResult] = None
        # cached on load; the getters read these without taking the lock
        self._sample_rate = 0
        self._num_speakers = 0

    @classmethod
    def from_config(
        cls,
        config: SynthesisConfig,
        backend_factory: Optional[BackendFactory] = None,
    ) -> "SynthesisEngine":
        """
        Build and initialise an engine from a :class:`SynthesisConfig`.

        Raises:
            VoiceKitError: The detection failure (see
                           :meth:`DetectResult.raise_for_error`) or any
                           initialisation error.
        """
        engine = cls(backend_factory=backend_factory)
        result = engine.initialize(
            config.model_dir,
            model_type=config.model_type,
            num_threads=config.num_threads,
            debug=config.debug,
            noise_scale=config.noise_scale,
            noise_scale_w=config.noise_scale_w,
            length_scale=config.length_scale,
            prefer_int8=config.prefer_int8,
            provider=config.provider,
        )
        result.raise_for_error()
        return engine

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def initialize(
        self,
        model_dir: Union[str, Path],
        model_type: str = AUTO,
        num_threads: int = 2,
        debug: bool = False,
        noise_scale: Optional[float] = None,
        noise_scale_w: Optional[float] = None,
        length_scale: Optional[float] = None,
        prefer_int8: Optional[bool] = None,
        provider: str = "cpu",
    ) -> DetectResult:
        """
        Detect the model in *model_dir* and load it.

        An already initialised engine releases its current model first.

        Args:
            model_dir:     Directory holding the model files.
            model_type:    ``"auto"`` or a kind literal to force.
            num_threads:   Runtime threads, >= 1.
            debug:         Enable runtime debug output.
            noise_scale:   Acoustic variance (vits, matcha).
            noise_scale_w: Duration variance (vits).
            length_scale:  Speaking-rate scale (vits, matcha, kokoro, kitten).
            prefer_int8:   Prefer ``int8`` model files when both exist.
            provider:      ONNX Runtime execution provider.

        Returns:
            The detection result.  When ``ok`` is ``False`` nothing was
            loaded and the engine stays uninitialised.

        Raises:
            InvalidArgumentError: *num_threads* < 1.
            EngineReleasedError:  The engine was already released.
            InitializationError:  The runtime failed to load the model.
        """
        if num_threads < 1:
            raise InvalidArgumentError(f"num_threads must be >= 1, got {num_threads}")

        with self._lock:
            if self._state is EngineState.RELEASED:
                raise EngineReleasedError("TTS: Engine was released; create a new one")
            if self._state is EngineState.INITIALIZED:
                logger.info("TTS: Re-initialising; releasing current model")
                self._dispose()

            detect = detect_tts_model(model_dir, model_type, prefer_int8=prefer_int8)
            if not detect.ok:
                logger.error("%s", detect.error)
                return detect

            try:
                backend = self._backend_factory(
                    detect,
                    num_threads=num_threads,
                    debug=debug,
                    provider=provider,
                    noise_scale=noise_scale,
                    noise_scale_w=noise_scale_w,
                    length_scale=length_scale,
                )
            except VoiceKitError:
                logger.error("TTS: Failed to create %s engine", detect.selected_kind.value)
                raise
            except Exception as e:
                logger.error("TTS: Exception during initialization: %s", e)
                raise InitializationError(
                    f"TTS: Failed to load {detect.selected_kind.value} model "
                    f"from {detect.model_dir}: {e}"
                ) from e

            self._backend = backend
            self._detect = detect
            self._sample_rate = int(backend.sample_rate)
            self._num_speakers = int(backend.num_speakers)
            self._state = EngineState.INITIALIZED
            logger.info(
                "TTS: Initialization successful (%s, %d Hz, %d speakers)",
                detect.selected_kind.value,
                backend.sample_rate,
                backend.num_speakers,
            )
            return detect

    def release(self) -> None:
        """Free the loaded model.  Idempotent; the engine becomes RELEASED."""
        with self._lock:
            if self._state is EngineState.INITIALIZED:
                self._dispose()
                logger.info("TTS: Resources released")
            self._state = EngineState.RELEASED

    def _dispose(self) -> None:
        backend, self._backend = self._backend, None
        self._detect = None
        self._sample_rate = 0
        self._num_speakers = 0
        self._state = EngineState.UNINITIALIZED
        if backend is not None:
            backend.close()

    def __enter__(self) -> "SynthesisEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is EngineState.INITIALIZED

    @property
    def detect_result(self) -> Optional[DetectResult]:
        """Detection result of the loaded model, ``None`` when not loaded."""
        return self._detect

    @property
    def sample_rate(self) -> int:
        return self._sample_rate

    @property
    def num_speakers(self) -> int:
        return self._num_speakers

    def get_sample_rate(self) -> int:
        return self.sample_rate

    def get_num_speakers(self) -> int:
        return self.num_speakers

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def _require_backend(self) -> BaseSynthesisBackend:
        if self._state is EngineState.RELEASED:
            raise EngineReleasedError("TTS: Engine was released")
        if self._state is not EngineState.INITIALIZED or self._backend is None:
            raise NotInitializedError("TTS: Not initialized. Call initialize() first.")
        return self._backend

    @staticmethod
    def _check_request(backend: BaseSynthesisBackend, text: str, sid: int, speed: float):
        if not text or not text.strip():
            raise InvalidArgumentError("TTS: Input text is empty")
        if speed <= 0:
            raise InvalidArgumentError(f"TTS: speed must be > 0, got {speed}")
        if sid < 0:
            raise InvalidArgumentError(f"TTS: speaker id must be >= 0, got {sid}")
        speakers = backend.num_speakers
        if speakers > 1 and sid >= speakers:
            raise InvalidArgumentError(
                f"TTS: speaker id {sid} out of range [0, {speakers})"
            )

    def generate(self, text: str, sid: int = 0, speed: float = 1.0) -> AudioResult:
        """
        Synthesise *text*, blocking until the whole clip is ready.

        Args:
            text:  Text to speak.
            sid:   Speaker id, in ``[0, num_speakers)`` for multi-speaker models.
            speed: Duration scale; > 1 is faster/shorter speech.

        Returns:
            Non-empty :class:`AudioResult` at the model's native rate.

        Raises:
            NotInitializedError:  Before initialize() or after release().
            InvalidArgumentError: Empty text, bad *sid* or *speed*.
            SynthesisError:       The runtime failed or produced no audio.
        """
        with self._lock:
            backend = self._require_backend()
            self._check_request(backend, text, sid, speed)
            logger.info(
                "TTS: Generating speech (%d chars, sid=%d, speed=%.2f)",
                len(text),
                sid,
                speed,
            )
            try:
                audio = backend.generate(text, sid=sid, speed=speed)
            except Exception as e:
                raise SynthesisError(f"TTS: Exception during generation: {e}") from e

            if audio is None or audio.is_empty:
                raise SynthesisError("TTS: Generated empty audio")
            if audio.sample_rate != backend.sample_rate:
                audio = AudioResult(samples=audio.samples, sample_rate=backend.sample_rate)

            logger.info(
                "TTS: Generated %d samples at %d Hz", audio.num_samples, audio.sample_rate
            )
            return audio

    def generate_stream(
        self,
        text: str,
        sid: int = 0,
        speed: float = 1.0,
        callback: Optional[StreamCallback] = None,
    ) -> bool:
        """
        Synthesise *text*, handing audio to *callback* as it is produced.

        ``callback(chunk, chunk_length, progress)`` receives float32
        chunks in playback order.  *progress* never decreases, stays in
        [0, 1] and is exactly 1.0 on the final chunk.  Returning a value
        <= 0 stops generation: no further callbacks fire.  Cancellation
        is only checked between chunks.

        Returns:
            ``True`` if every chunk was delivered, ``False`` if the
            callback stopped the stream.

        Raises:
            NotInitializedError:  Before initialize() or after release().
            InvalidArgumentError: Empty text, bad *sid* or *speed*, no callback.
            SynthesisError:       The runtime failed or produced no audio.
        """
        if callback is None:
            raise InvalidArgumentError("TTS: generate_stream() needs a callback")

        with self._lock:
            backend = self._require_backend()
            self._check_request(backend, text, sid, speed)
            logger.info(
                "TTS: Streaming speech (%d chars, sid=%d, speed=%.2f)",
                len(text),
                sid,
                speed,
            )

            relay = _ChunkRelay(callback)
            try:
                audio = backend.generate(text, sid=sid, speed=speed, callback=relay.on_chunk)
            except Exception as e:
                if relay.cancelled:
                    logger.debug("TTS: Runtime raised after cancellation: %s", e)
                    return False
                raise SynthesisError(
                    f"TTS: Exception during streaming generation: {e}"
                ) from e

            completed = relay.finish(audio)
            logger.debug("TTS: Stream delivered %d chunks", relay.delivered)
            return completed

    def __repr__(self) -> str:
        if not self.is_initialized:
            return f"SynthesisEngine(state={self._state.value})"
        return (
            f"SynthesisEngine({self._detect.selected_kind.value}, "
            f"rate={self.sample_rate}Hz, speakers={self.num_speakers})"
        )
