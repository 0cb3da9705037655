"""Append-only reconciliation of `.gitignore` against a required set of lines."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class GitignoreUpdate:
    """What a reconciliation changed."""

    created: bool
    added: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.created or bool(self.added)


def _dedupe(lines: Sequence[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for line in lines:
        if line not in seen:
            seen.add(line)
            ordered.append(line)
    return ordered


def reconcile_gitignore(path: Path, required: Sequence[str]) -> GitignoreUpdate:
    """Make sure every line in `required` is present in the file at `path`.

    A missing file is created with all required lines. An existing file is
    only ever appended to: missing lines are written in their required order
    and existing content is left untouched.
    """
    wanted = _dedupe(required)

    if not path.exists():
        path.write_text("".join(f"{line}\n" for line in wanted), encoding="utf-8")
        logger.info(".gitignore created with default content", extra={"path": str(path)})
        return GitignoreUpdate(created=True, added=wanted)

    content = path.read_text(encoding="utf-8")
    existing = set(content.splitlines())
    missing = [line for line in wanted if line not in existing]

    if not missing:
        logger.info(".gitignore is already up to date")
        return GitignoreUpdate(created=False)

    with path.open("a", encoding="utf-8") as f:
        if content and not content.endswith("\n"):
            f.write("\n")
        for line in missing:
            f.write(f"{line}\n")
            logger.info("Added missing .gitignore line: %s", line)

    return GitignoreUpdate(created=False, added=missing)
