"""
Smoke test for model detection over a folder of downloaded models.
Run this first to confirm every model directory is recognised before
loading anything into the inference runtime.

Usage:
    python verify_models.py path/to/models [--stt]
"""

import argparse
import sys
from pathlib import Path

from voicekit.detect import detect_stt_model, detect_tts_model


def run(root: Path, stt: bool) -> int:
    detect = detect_stt_model if stt else detect_tts_model
    label = "STT" if stt else "TTS"

    model_dirs = sorted(p for p in root.iterdir() if p.is_dir())
    if not model_dirs:
        print(f"  [WARN] No model directories under {root}")
        return 1

    print("=" * 72)
    print(f"{label} detection under {root}")
    print("=" * 72)

    failures = 0
    for model_dir in model_dirs:
        result = detect(model_dir)
        if result.ok:
            candidates = ", ".join(m.type for m in result.detected_models) or "-"
            print(
                f"  [PASS] {model_dir.name:45s} {result.selected_kind.value:14s} "
                f"(matched: {candidates})"
            )
            for slot, path in result.paths.populated().items():
                print(f"           {slot:16s} {Path(path.split(',')[0]).name}")
        else:
            failures += 1
            print(f"  [FAIL] {model_dir.name:45s} {result.error}")

    print()
    print(f"{len(model_dirs) - failures}/{len(model_dirs)} directories recognised.")
    return 1 if failures else 0


def main():
    parser = argparse.ArgumentParser(description="Detect every model under a folder")
    parser.add_argument("root", help="Folder whose sub-directories are model dirs")
    parser.add_argument("--stt", action="store_true", help="Detect STT models")
    args = parser.parse_args()

    root = Path(args.root)
    if not root.is_dir():
        print(f"Not a directory: {root}")
        sys.exit(1)
    sys.exit(run(root, args.stt))


if __name__ == "__main__":
    main()
