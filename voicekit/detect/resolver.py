"""
Path resolver: turns a selected kind plus a directory scan into the
concrete file paths an inference runtime needs.

Every populated path names an entry the scanner actually saw; nothing
is guessed from conventions alone.
"""

import logging
from typing import Iterable, Optional, Sequence, Tuple

from .models import (
    DetectedModel,
    DetectResult,
    SttModelKind,
    SttModelPaths,
    TtsModelKind,
    TtsModelPaths,
)
from .rules import KindRule, rule_for
from .scanner import Artifact, ScanResult

logger = logging.getLogger(__name__)

# Roles where every match is passed on (comma separated) instead of one
_MULTI_VALUE_ROLES = {"lexicon"}


def _rank(artifact: Artifact, prefer_int8: bool) -> Tuple[int, str]:
    if prefer_int8:
        order = 0 if artifact.is_int8 else (2 if artifact.is_fp16 else 1)
    else:
        order = 2 if artifact.is_int8 else (1 if artifact.is_fp16 else 0)
    return order, artifact.name


def choose_artifact(
    candidates: Sequence[Artifact],
    prefer_int8: Optional[bool] = None,
) -> Optional[Artifact]:
    """
    Pick one file among several candidates for the same role.

    With *prefer_int8* set, an ``int8`` file wins over a plain one.
    Otherwise the plain (non-quantised) file wins, then ``fp16``, then
    ``int8``.  Remaining ties are broken by file name.
    """
    if not candidates:
        return None
    return min(candidates, key=lambda a: _rank(a, bool(prefer_int8)))


def _piper_models(scan: ScanResult) -> Tuple[Artifact, ...]:
    """Model files that have a sibling ``<name>.json`` Piper config."""
    configs = {a.name for a in scan.with_role("piper_config")}
    return tuple(a for a in scan.with_role("model") if a.name + ".json" in configs)


def _candidates(rule: KindRule, role: str, scan: ScanResult) -> Tuple[Artifact, ...]:
    if role == "model" and rule.kind is TtsModelKind.VITS:
        piper = _piper_models(scan)
        if piper:
            return piper
    return scan.with_role(role)


def _failure(kind, scan: ScanResult, role: str, detected: Iterable[DetectedModel]):
    message = f"{kind.value}: missing required role '{role}' in {scan.model_dir}"
    logger.debug("Resolution failed: %s", message)
    return DetectResult(
        ok=False,
        selected_kind=kind,
        paths=_empty_paths(kind),
        error=message,
        error_code="missing_required_file",
        detected_models=tuple(detected),
        model_dir=scan.model_dir,
        missing_role=role,
    )


def _empty_paths(kind):
    return SttModelPaths() if isinstance(kind, SttModelKind) else TtsModelPaths()


def resolve_paths(
    kind,
    scan: ScanResult,
    prefer_int8: Optional[bool] = None,
    detected_models: Iterable[DetectedModel] = (),
) -> DetectResult:
    """
    Resolve the file paths *kind* needs from *scan*.

    Only the roles the kind declares (required and optional) are
    populated.  A required role without a matching entry fails the
    resolution; this is how an explicit model type that does not fit
    the directory is reported.

    Args:
        kind:            Selected ``SttModelKind`` or ``TtsModelKind``.
        scan:            Result of :func:`scan_directory`.
        prefer_int8:     Quantised-file preference (see :func:`choose_artifact`).
        detected_models: Candidates found by the classifier, carried into
                         the result for diagnostics.

    Returns:
        A :class:`DetectResult`; ``ok=False`` names the unresolved role.
    """
    detected = tuple(detected_models)
    rule = rule_for(kind)

    values = {}
    for role in rule.roles:
        required = role in rule.required
        found = _candidates(rule, role, scan)

        if not found:
            if required:
                return _failure(kind, scan, role, detected)
            continue

        if role in _MULTI_VALUE_ROLES:
            value = ",".join(a.path for a in found)
        else:
            value = choose_artifact(found, prefer_int8).path

        values[rule.slot_for(role)] = value
        logger.debug("  %s -> %s", role, value)

    paths_type = SttModelPaths if isinstance(kind, SttModelKind) else TtsModelPaths
    return DetectResult(
        ok=True,
        selected_kind=kind,
        paths=paths_type(**values),
        detected_models=detected,
        tokens_required=rule.tokens_required,
        model_dir=scan.model_dir,
    )
