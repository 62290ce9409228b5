"""
Model classification: scan -> precedence rules -> path resolution.

This is the main entry point for model detection.  Both directions
share one algorithm and differ only in their rule table:

1. Scan the directory (:func:`scan_directory`).
2. Evaluate every rule in precedence order; all satisfied kinds are
   reported, the first one is selected.
3. Resolve the selected kind's file paths (:func:`resolve_paths`).

An explicit model type skips step 2 and is handed straight to the
resolver, which fails loudly when the directory does not fit.
"""

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple, Union

from voicekit.errors import ModelNotFoundError

from .models import (
    DetectedModel,
    DetectResult,
    SttModelKind,
    SttModelPaths,
    TtsModelKind,
    TtsModelPaths,
)
from .resolver import resolve_paths
from .rules import STT_RULES, TTS_RULES, KindRule
from .scanner import ScanResult, scan_directory

logger = logging.getLogger(__name__)

AUTO = "auto"


def rule_satisfied(rule: KindRule, scan: ScanResult) -> bool:
    """True when every required role and marker of *rule* is present."""
    roles = scan.roles
    if not all(role in roles for role in rule.required):
        return False
    return all(marker in scan.markers for marker in rule.markers)


def matching_kinds(rules: Sequence[KindRule], scan: ScanResult) -> List[KindRule]:
    """Rules satisfied by *scan*, in precedence order."""
    return [rule for rule in rules if rule_satisfied(rule, scan)]


def _fail(kind_type, model_dir, message, code, detected=()) -> DetectResult:
    empty = SttModelPaths() if kind_type is SttModelKind else TtsModelPaths()
    logger.warning(message)
    return DetectResult(
        ok=False,
        selected_kind=kind_type.UNKNOWN,
        paths=empty,
        error=message,
        error_code=code,
        detected_models=tuple(detected),
        model_dir=str(model_dir or ""),
    )


def _classify(
    label: str,
    kind_type,
    rules: Tuple[KindRule, ...],
    model_dir: Union[str, Path],
    model_type: Optional[str],
    prefer_int8: Optional[bool],
) -> DetectResult:
    try:
        scan = scan_directory(model_dir)
    except ModelNotFoundError as e:
        return _fail(kind_type, model_dir, f"{label}: {e}", "not_found")

    matched = matching_kinds(rules, scan)
    detected = [DetectedModel(rule.kind.value, scan.model_dir) for rule in matched]

    forced = model_type is not None and model_type.strip().lower() != AUTO
    if forced:
        selected = kind_type.parse(model_type)
        if selected is kind_type.UNKNOWN:
            known = ", ".join(rule.kind.value for rule in rules)
            return _fail(
                kind_type,
                scan.model_dir,
                f"{label}: Unsupported model type '{model_type}'. Known: {known}",
                "unsupported",
                detected,
            )
        logger.info("%s: model type forced to %s", label, selected.value)
    elif matched:
        selected = matched[0].kind
        if len(matched) > 1:
            logger.info(
                "%s: %s also match; %s wins by precedence",
                label,
                ", ".join(m.type for m in detected[1:]),
                selected.value,
            )
    else:
        return _fail(
            kind_type,
            scan.model_dir,
            f"{label}: No compatible model type detected in {scan.model_dir}",
            "no_model_detected",
            detected,
        )

    result = resolve_paths(selected, scan, prefer_int8, detected)
    if result.ok:
        logger.info("%s: detected %s in %s", label, selected.value, scan.model_dir)
    else:
        logger.warning("%s", result.error)
    return result


def detect_stt_model(
    model_dir: Union[str, Path],
    prefer_int8: Optional[bool] = None,
    model_type: Optional[str] = None,
) -> DetectResult:
    """
    Detect a speech-to-text model in *model_dir*.

    Args:
        model_dir:   Directory holding the model files.
        prefer_int8: Pick ``int8`` files over plain ones when both exist.
        model_type:  ``None``/``"auto"`` to auto-detect, or a kind literal
                     (e.g. ``"whisper"``, ``"nemo-ctc"``) to force one.

    Returns:
        A :class:`DetectResult`.  Never raises for bad directories.
    """
    return _classify("STT", SttModelKind, STT_RULES, model_dir, model_type, prefer_int8)


def detect_tts_model(
    model_dir: Union[str, Path],
    model_type: Optional[str] = AUTO,
    prefer_int8: Optional[bool] = None,
) -> DetectResult:
    """
    Detect a text-to-speech model in *model_dir*.

    Args:
        model_dir:   Directory holding the model files.
        model_type:  ``"auto"`` to auto-detect, or a kind literal
                     (``"vits"``, ``"kokoro"``...) to force one.
        prefer_int8: Pick ``int8`` files over plain ones when both exist.

    Returns:
        A :class:`DetectResult`.  Never raises for bad directories.
    """
    return _classify("TTS", TtsModelKind, TTS_RULES, model_dir, model_type, prefer_int8)
