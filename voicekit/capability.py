"""
Speech capability interface.

Platform speech services (system TTS voices, OS recognisers) and the
local ONNX engines all fit the same shape:

* ``speak(text, options)`` yields :class:`SpeechEvent` objects
  (``START``, one ``PROGRESS`` per audio chunk, then ``COMPLETE`` or
  ``ERROR``);
* ``recognize(samples, sample_rate)`` yields :class:`RecognitionEvent`
  objects (``START``, ``RESULT``, ``COMPLETE`` or ``ERROR``).

Closing a ``speak`` iterator early cancels synthesis between chunks.
"""

import logging
import queue
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

import numpy as np

from voicekit.errors import VoiceKitError
from voicekit.stt.recognizer import SpeechRecognizer
from voicekit.tts.engine import SynthesisEngine

logger = logging.getLogger(__name__)

_DONE = object()


class SpeechEventType(Enum):
    START = "start"
    PROGRESS = "progress"
    RESULT = "result"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class SpeechOptions:
    """
    Per-utterance options.

    ``locale`` and ``pitch`` are honoured by platform voices; the local
    ONNX engine speaks in its model's language and ignores them.
    """

    sid: int = 0
    speed: float = 1.0
    locale: Optional[str] = None
    pitch: float = 1.0


@dataclass
class SpeechEvent:
    type: SpeechEventType
    progress: float = 0.0
    samples: Optional[np.ndarray] = None
    sample_rate: int = 0
    cancelled: bool = False
    error: str = ""


@dataclass
class RecognitionEvent:
    type: SpeechEventType
    text: str = ""
    error: str = ""


class SpeechCapability(ABC):
    """Anything that can speak text and/or recognise speech."""

    @abstractmethod
    def speak(self, text: str, options: Optional[SpeechOptions] = None) -> Iterator[SpeechEvent]:
        """Synthesise *text*, yielding events as audio becomes available."""

    @abstractmethod
    def recognize(self, samples, sample_rate: int) -> Iterator[RecognitionEvent]:
        """Transcribe one utterance, yielding events."""


class LocalSpeechCapability(SpeechCapability):
    """
    :class:`SpeechCapability` over the local ONNX engines.

    Usage::

        engine = SynthesisEngine()
        engine.initialize("models/vits-piper-en_US-amy-low")
        speech = LocalSpeechCapability(engine)
        for event in speech.speak("Hello"):
            if event.type is SpeechEventType.PROGRESS:
                player.write(event.samples)
    """

    def __init__(
        self,
        engine: Optional[SynthesisEngine] = None,
        recognizer: Optional[SpeechRecognizer] = None,
    ):
        self._engine = engine
        self._recognizer = recognizer

    # ------------------------------------------------------------------
    # Speak
    # ------------------------------------------------------------------

    def speak(self, text: str, options: Optional[SpeechOptions] = None) -> Iterator[SpeechEvent]:
        options = options or SpeechOptions()
        if options.locale or options.pitch != 1.0:
            logger.debug("Local TTS ignores locale=%s pitch=%.2f", options.locale, options.pitch)

        yield SpeechEvent(SpeechEventType.START)
        if self._engine is None:
            yield SpeechEvent(SpeechEventType.ERROR, error="No synthesis engine configured")
            return

        # unbounded: the worker puts while holding the engine lock
        events: "queue.Queue" = queue.Queue()
        cancel = threading.Event()
        sample_rate = self._engine.sample_rate

        def on_chunk(chunk, length, progress):
            if cancel.is_set():
                return 0
            events.put(
                SpeechEvent(
                    SpeechEventType.PROGRESS,
                    progress=progress,
                    samples=chunk,
                    sample_rate=sample_rate,
                )
            )
            return 1

        def produce():
            try:
                completed = self._engine.generate_stream(
                    text, options.sid, options.speed, on_chunk
                )
                events.put(
                    SpeechEvent(
                        SpeechEventType.COMPLETE,
                        progress=1.0 if completed else 0.0,
                        sample_rate=sample_rate,
                        cancelled=not completed,
                    )
                )
            except VoiceKitError as e:
                logger.error("speak failed: %s", e)
                events.put(SpeechEvent(SpeechEventType.ERROR, error=str(e)))
            finally:
                events.put(_DONE)

        worker = threading.Thread(target=produce, name="voicekit-speak", daemon=True)
        worker.start()
        try:
            while True:
                item = events.get()
                if item is _DONE:
                    break
                yield item
        finally:
            cancel.set()
            worker.join()

    # ------------------------------------------------------------------
    # Recognize
    # ------------------------------------------------------------------

    def recognize(self, samples, sample_rate: int) -> Iterator[RecognitionEvent]:
        yield RecognitionEvent(SpeechEventType.START)
        if self._recognizer is None:
            yield RecognitionEvent(SpeechEventType.ERROR, error="No recognizer configured")
            return
        try:
            text = self._recognizer.recognize(samples, sample_rate)
        except VoiceKitError as e:
            logger.error("recognize failed: %s", e)
            yield RecognitionEvent(SpeechEventType.ERROR, error=str(e))
            return
        yield RecognitionEvent(SpeechEventType.RESULT, text=text)
        yield RecognitionEvent(SpeechEventType.COMPLETE, text=text)
