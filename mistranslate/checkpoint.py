"""Resumable progress files.

A checkpoint is the run of encoded lines that were finished without a gap,
followed by a marker line holding the index to resume from.
"""

from __future__ import annotations

import pathlib
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from .documents import atomic_write

CHECKPOINT_MARKER = "// CONTINUE FROM INDEX"
MARKER_PATTERN = re.compile(r"// CONTINUE FROM INDEX (\d+)")


@dataclass
class CheckpointState:
    index: int = 0
    previous_data: List[str] = field(default_factory=list)


def contiguous_prefix(results: Sequence[Optional[str]]) -> List[str]:
    """Return entries from index 0 up to (not including) the first gap."""

    prefix: List[str] = []
    for entry in results:
        if not entry:
            break
        prefix.append(entry)
    return prefix


def load_checkpoint(path: pathlib.Path) -> CheckpointState:
    """Read a checkpoint; a missing or unmarked file means start from scratch."""

    try:
        data = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return CheckpointState()

    match = MARKER_PATTERN.search(data)
    if not match:
        return CheckpointState()

    previous = [
        line for line in data.splitlines() if not line.startswith(CHECKPOINT_MARKER)
    ]
    return CheckpointState(index=int(match.group(1)), previous_data=previous)


def save_checkpoint(path: pathlib.Path, results: Sequence[Optional[str]]) -> Optional[int]:
    """Persist the gap-free prefix of ``results`` and return the resume index.

    Nothing is written when ``results`` is empty.
    """

    if not results:
        return None

    prefix = contiguous_prefix(results)
    body = "".join(f"{line}\n" for line in prefix)
    atomic_write(f"{body}{CHECKPOINT_MARKER} {len(prefix)}\n", path)
    return len(prefix)
