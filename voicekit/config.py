"""Configuration for model loading and synthesis."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class SynthesisConfig:
    """
    All tuneable parameters for loading a TTS model and generating speech.

    Attributes:
        model_dir:     Directory holding the model files.
        model_type:    ``"auto"`` to detect, or a kind literal to force one.
        num_threads:   ONNX Runtime intra-op threads (>= 1).
        debug:         Enable runtime debug logging.
        provider:      Execution provider (``"cpu"``, ``"cuda"``, ``"coreml"``).
        noise_scale:   Acoustic variance override (vits, matcha).
        noise_scale_w: Duration variance override (vits).
        length_scale:  Speaking-rate override (vits, matcha, kokoro, kitten).
        prefer_int8:   Prefer ``int8`` files when both variants exist.
        sid:           Default speaker id.
        speed:         Default speed (>1 = faster).
    """

    model_dir: str = ""
    model_type: str = "auto"
    num_threads: int = 2
    debug: bool = False
    provider: str = "cpu"

    noise_scale: Optional[float] = None
    noise_scale_w: Optional[float] = None
    length_scale: Optional[float] = None
    prefer_int8: Optional[bool] = None

    sid: int = 0
    speed: float = 1.0
