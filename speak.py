#!/usr/bin/env python3
"""
voicekit: CLI entry point.

Detects the speech model in a directory and synthesises text to a WAV
(or MP3) file, optionally streaming with a progress bar.

Usage::

    python speak.py models/vits-piper-en_US-amy-low "Hello world" -o hello.wav
    python speak.py models/kokoro-en-v0_19 "Hi" --sid 3 --speed 1.2 -o hi.mp3
    echo "Long text..." | python speak.py models/kokoro-en-v0_19 - --stream -o out.wav
    python speak.py models/sherpa-onnx-whisper-tiny.en --detect-only --stt
    python speak.py models/matcha-icefall-en_US-ljspeech --detect-only -v 2

Verbosity levels::

    -v 0   Quiet: warnings and errors only.
    -v 1   Normal: detection summary and export info (default).
    -v 2   Debug: per-file tagging and role resolution.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import numpy as np
from tqdm import tqdm

from voicekit.config import SynthesisConfig
from voicekit.detect import detect_stt_model, detect_tts_model
from voicekit.errors import VoiceKitError
from voicekit.tts import AudioBuilder, AudioResult, SynthesisEngine

logger = logging.getLogger("voicekit")

# Mapping from --verbose integer to logging level
_VERBOSITY_MAP = {
    0: logging.WARNING,
    1: logging.INFO,
    2: logging.DEBUG,
}


# ------------------------------------------------------------------
# Argument parsing
# ------------------------------------------------------------------


def _positive_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected an integer, got '{value}'")
    if number < 1:
        raise argparse.ArgumentTypeError(f"Must be >= 1, got {number}")
    return number


def _build_parser() -> argparse.ArgumentParser:
    """Construct the argument parser with all engine options."""
    p = argparse.ArgumentParser(
        description="Detect an offline speech model and synthesise text with it.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "examples:\n"
            '  python speak.py models/vits-piper-en_US-amy-low "Hello" -o hello.wav\n'
            "  python speak.py models/kokoro-en-v0_19 - --stream -o out.mp3 < book.txt\n"
            "  python speak.py models/sherpa-onnx-whisper-tiny.en --detect-only --stt\n"
        ),
    )

    # -- Positional --------------------------------------------------------
    p.add_argument("model_dir", help="Directory holding the model files")
    p.add_argument(
        "text",
        nargs="?",
        default=None,
        help="Text to speak; '-' or omitted reads stdin. "
        "Not needed with --detect-only.",
    )

    # -- Model -------------------------------------------------------------
    model = p.add_argument_group("model")
    model.add_argument(
        "--model-type",
        default="auto",
        help="Force a model kind (vits, matcha, kokoro, kitten, zipvoice; "
        "with --stt: transducer, paraformer, nemo-ctc, ...). Default: auto",
    )
    model.add_argument(
        "--prefer-int8",
        action="store_true",
        default=None,
        help="Prefer int8-quantised files when both variants exist",
    )
    model.add_argument(
        "--threads",
        type=_positive_int,
        default=2,
        metavar="N",
        help="Inference threads (default: 2)",
    )
    model.add_argument(
        "--provider",
        default="cpu",
        help='ONNX Runtime provider, e.g. "cpu", "cuda", "coreml" (default: cpu)',
    )

    # -- Voice -------------------------------------------------------------
    voice = p.add_argument_group("voice")
    voice.add_argument("--sid", type=int, default=0, help="Speaker id (default: 0)")
    voice.add_argument(
        "--speed",
        type=float,
        default=1.0,
        metavar="FLOAT",
        help="Speed multiplier, >1 is faster (default: 1.0)",
    )
    voice.add_argument("--noise-scale", type=float, default=None, metavar="FLOAT")
    voice.add_argument("--noise-scale-w", type=float, default=None, metavar="FLOAT")
    voice.add_argument("--length-scale", type=float, default=None, metavar="FLOAT")

    # -- Output ------------------------------------------------------------
    out = p.add_argument_group("output")
    out.add_argument(
        "-o",
        "--output",
        default="speech.wav",
        help="Output audio file, .wav or .mp3 (default: speech.wav)",
    )
    out.add_argument(
        "--stream",
        action="store_true",
        help="Generate incrementally and show a progress bar",
    )

    # -- Debug / output control --------------------------------------------
    debug = p.add_argument_group("debug & output")
    debug.add_argument(
        "--detect-only",
        action="store_true",
        help="Print the detection result as JSON and exit",
    )
    debug.add_argument(
        "--stt",
        action="store_true",
        help="With --detect-only: detect a speech-to-text model instead",
    )
    debug.add_argument(
        "--runtime-debug",
        action="store_true",
        help="Enable sherpa-onnx debug output",
    )
    debug.add_argument(
        "-v",
        "--verbose",
        type=int,
        choices=[0, 1, 2],
        default=1,
        help="Verbosity: 0=quiet, 1=normal (default), 2=debug",
    )
    debug.add_argument(
        "--no-progress",
        action="store_true",
        help="Disable tqdm progress bars",
    )

    return p


# ------------------------------------------------------------------
# Logging setup
# ------------------------------------------------------------------


def _configure_logging(verbosity: int) -> None:
    """
    Set up the root ``voicekit`` logger.

    At verbosity 0 (WARNING), uses a minimal format.  At 2 (DEBUG),
    includes timestamps and the module name.
    """
    level = _VERBOSITY_MAP.get(verbosity, logging.INFO)

    if level <= logging.DEBUG:
        fmt = "%(asctime)s %(name)s %(levelname)s: %(message)s"
        datefmt = "%H:%M:%S"
    elif level <= logging.INFO:
        fmt = "%(message)s"
        datefmt = None
    else:
        fmt = "%(levelname)s: %(message)s"
        datefmt = None

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root = logging.getLogger("voicekit")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Suppress noisy third-party loggers regardless of verbosity
    for name in ("pydub", "pydub.converter"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ------------------------------------------------------------------
# Sub-commands
# ------------------------------------------------------------------


def _cmd_detect(args: argparse.Namespace) -> int:
    """Print the detection result as JSON; exit status mirrors ``ok``."""
    if args.stt:
        model_type = None if args.model_type == "auto" else args.model_type
        result = detect_stt_model(
            args.model_dir, prefer_int8=args.prefer_int8, model_type=model_type
        )
    else:
        result = detect_tts_model(
            args.model_dir, model_type=args.model_type, prefer_int8=args.prefer_int8
        )
    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


def _read_text(args: argparse.Namespace) -> str:
    if args.text is None or args.text == "-":
        return sys.stdin.read()
    return args.text


def _synthesize_stream(engine: SynthesisEngine, config: SynthesisConfig, text: str, quiet: bool) -> AudioResult:
    """Stream synthesis into one clip, drawing a progress bar."""
    chunks = []
    bar = tqdm(total=100, unit="%", desc="Synthesising", disable=quiet)

    def on_chunk(samples, length, progress):
        chunks.append(samples[:length].copy())
        bar.update(round(progress * 100) - bar.n)
        return 1

    try:
        engine.generate_stream(text, config.sid, config.speed, on_chunk)
    finally:
        bar.close()

    samples = np.concatenate(chunks) if chunks else np.zeros(0, dtype=np.float32)
    return AudioResult(samples=samples, sample_rate=engine.sample_rate)


def _export(audio: AudioResult, output: str) -> None:
    if output.lower().endswith(".mp3"):
        builder = AudioBuilder(sample_rate=audio.sample_rate)
        builder.add_audio(audio)
        builder.export_mp3(output)
    else:
        audio.save_wav(output)


# ------------------------------------------------------------------
# Entry point
# ------------------------------------------------------------------


def main() -> int:
    """Parse arguments, configure logging, and run detection/synthesis."""
    parser = _build_parser()
    args = parser.parse_args()

    # Logging must be configured before any logger calls
    _configure_logging(args.verbose)

    if not Path(args.model_dir).is_dir():
        parser.error(f"Model directory not found: {args.model_dir}")

    if args.detect_only:
        return _cmd_detect(args)

    if args.stt:
        parser.error("--stt is only supported together with --detect-only")

    text = _read_text(args).strip()
    if not text:
        parser.error("No text to speak")

    config = SynthesisConfig(
        model_dir=args.model_dir,
        model_type=args.model_type,
        num_threads=args.threads,
        debug=args.runtime_debug,
        provider=args.provider,
        noise_scale=args.noise_scale,
        noise_scale_w=args.noise_scale_w,
        length_scale=args.length_scale,
        prefer_int8=args.prefer_int8,
        sid=args.sid,
        speed=args.speed,
    )

    logger.info("voicekit")
    logger.info("  Model:  %s (%s)", config.model_dir, config.model_type)
    logger.info("  Output: %s", args.output)
    if config.speed != 1.0:
        logger.info("  Speed:  %.2fx", config.speed)

    try:
        with SynthesisEngine.from_config(config) as engine:
            logger.info("  Engine: %s", engine)
            if args.stream:
                quiet = args.no_progress or args.verbose == 0
                audio = _synthesize_stream(engine, config, text, quiet)
            else:
                audio = engine.generate(text, sid=config.sid, speed=config.speed)
            _export(audio, args.output)
    except VoiceKitError as e:
        logger.error("%s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
