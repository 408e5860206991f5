"""
Working-tree source.

Reads ``.beads/issues.jsonl`` straight from a rig's local path without
touching git. Useful for rigs that are already kept up to date by other
tooling, and as the ``local_only`` sync mode.
"""

from __future__ import annotations

import asyncio
from pathlib import Path

from allbeads.errors import SourceUninitialized, SourceUnreachable
from allbeads.models.rig import Rig
from allbeads.sources.base import FetchResult, RepositorySource
from allbeads.utils.helpers import hash_string


def content_revision(content: str) -> str:
    """Digest used as the revision of content read outside git."""
    return hash_string(content)[:12]


def read_issues_file(rig: Rig, issues_path: Path | None = None) -> FetchResult:
    """
    Read a rig's issues file from disk.

    Raises:
        SourceUnreachable: If the rig directory is missing or unreadable
        SourceUninitialized: If the rig has no ``.beads`` directory or issues file
    """
    path = issues_path or rig.issues_path
    if not rig.path.is_dir():
        raise SourceUnreachable(rig.name, f"local path {rig.path} does not exist")
    if not rig.beads_dir.is_dir():
        raise SourceUninitialized(rig.name, f"no .beads directory in {rig.path}")
    if not path.is_file():
        raise SourceUninitialized(rig.name, f"no issues file at {path}")

    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise SourceUnreachable(rig.name, f"issues file is not UTF-8: {e}") from e
    except OSError as e:
        raise SourceUnreachable(rig.name, f"cannot read {path}: {e}") from e

    return FetchResult(content=content, revision=content_revision(content))


class LocalSource(RepositorySource):
    """Source reading the working tree of each rig."""

    name = "local"

    async def fetch(self, rig: Rig) -> FetchResult:
        return await asyncio.to_thread(read_issues_file, rig)
