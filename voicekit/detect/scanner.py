"""
Artifact scanner: lists a model directory and tags every entry.

Tagging is purely name based (see :mod:`voicekit.detect.rules`); no
file is opened.  Only immediate children are listed.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, Tuple, Union

from voicekit.errors import ModelNotFoundError

from .rules import FP16_KEYWORD, INT8_KEYWORD, MARKER_KEYWORDS, ROLE_PATTERNS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Artifact:
    """One directory entry with the roles its name qualifies for."""

    name: str
    path: str
    is_dir: bool
    extension: str
    roles: FrozenSet[str]

    @property
    def is_int8(self) -> bool:
        return INT8_KEYWORD in self.name.lower()

    @property
    def is_fp16(self) -> bool:
        return FP16_KEYWORD in self.name.lower()

    @property
    def quantized(self) -> bool:
        return self.is_int8 or self.is_fp16


@dataclass(frozen=True)
class ScanResult:
    """
    Tagged listing of a model directory.

    ``artifacts`` is sorted by name so every consumer sees the same
    order on every call.
    """

    model_dir: str
    artifacts: Tuple[Artifact, ...]
    extensions: FrozenSet[str]
    markers: FrozenSet[str]

    def with_role(self, role: str) -> Tuple[Artifact, ...]:
        """All entries tagged with *role*, in name order."""
        return tuple(a for a in self.artifacts if role in a.roles)

    def has_role(self, role: str) -> bool:
        return any(role in a.roles for a in self.artifacts)

    @property
    def roles(self) -> FrozenSet[str]:
        found = set()
        for artifact in self.artifacts:
            found.update(artifact.roles)
        return frozenset(found)

    @property
    def is_empty(self) -> bool:
        return not self.artifacts


def tag_entry(name: str, is_dir: bool) -> FrozenSet[str]:
    """Return the set of roles whose pattern matches *name*."""
    return frozenset(
        role for role, pattern in ROLE_PATTERNS.items() if pattern.matches(name, is_dir)
    )


def find_markers(model_dir: Union[str, Path], names) -> FrozenSet[str]:
    """Architecture hints present in the directory name or any file name."""
    haystacks = [Path(model_dir).name.lower()] + [n.lower() for n in names]
    found = set()
    for marker, keywords in MARKER_KEYWORDS.items():
        if any(word in text for text in haystacks for word in keywords):
            found.add(marker)
    return frozenset(found)


def scan_directory(model_dir: Union[str, Path]) -> ScanResult:
    """
    List and tag the immediate entries of *model_dir*.

    Hidden entries are skipped.  Sub-directories are kept only when a
    directory role (e.g. ``espeak-ng-data``) claims them.

    Raises:
        ModelNotFoundError: If *model_dir* is empty, missing, not a
                            directory, or cannot be listed.
    """
    if not model_dir:
        raise ModelNotFoundError("Model directory is empty")

    root = Path(model_dir)
    if not root.is_dir():
        raise ModelNotFoundError(
            f"Model directory does not exist or is not a directory: {root}"
        )

    try:
        with os.scandir(root) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise ModelNotFoundError(f"Cannot read model directory {root}: {e}") from e

    artifacts = []
    extensions = set()
    for entry in entries:
        if entry.name.startswith("."):
            continue
        try:
            is_dir = entry.is_dir()
        except OSError:
            logger.debug("Skipping unreadable entry %s", entry.path)
            continue

        roles = tag_entry(entry.name, is_dir)
        if is_dir and not roles:
            continue

        ext = "" if is_dir else Path(entry.name).suffix.lower()
        if ext:
            extensions.add(ext)
        artifacts.append(
            Artifact(
                name=entry.name,
                path=str(root / entry.name),
                is_dir=is_dir,
                extension=ext,
                roles=roles,
            )
        )
        logger.debug("  %-40s %s", entry.name, ",".join(sorted(roles)) or "-")

    markers = find_markers(root, [a.name for a in artifacts])
    return ScanResult(
        model_dir=str(root),
        artifacts=tuple(artifacts),
        extensions=frozenset(extensions),
        markers=markers,
    )
