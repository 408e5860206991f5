"""
Test configuration and fixtures.
"""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from allbeads.models.bead import Bead
from allbeads.models.rig import Rig

BASE_TIME = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _record(
    id: str,
    title: str | None = None,
    status: str = "open",
    priority: int = 2,
    issue_type: str = "task",
    minutes: int = 0,
    **extra,
) -> dict:
    stamp = (BASE_TIME + timedelta(minutes=minutes)).isoformat()
    data = {
        "id": id,
        "title": title if title is not None else f"Bead {id}",
        "status": status,
        "priority": priority,
        "issue_type": issue_type,
        "created_at": BASE_TIME.isoformat(),
        "updated_at": stamp,
    }
    data.update(extra)
    return data


@pytest.fixture
def record():
    """Factory for raw issue records (dicts)."""
    return _record


@pytest.fixture
def jsonl():
    """Render records as line-delimited JSON."""

    def render(*records: dict) -> str:
        return "\n".join(json.dumps(r) for r in records) + "\n"

    return render


@pytest.fixture
def make_bead():
    """Factory for beads, optionally tagged with an origin."""

    def factory(id: str, origin: str | None = None, **kwargs) -> Bead:
        bead = Bead.model_validate(_record(id, **kwargs))
        return bead.with_origin(origin) if origin else bead

    return factory


@pytest.fixture
def make_rig(tmp_path):
    """Factory for rigs rooted under the test's temporary directory."""

    def factory(name: str, context: str = "default", **kwargs) -> Rig:
        kwargs.setdefault("path", tmp_path / "rigs" / name)
        return Rig(name=name, context=context, **kwargs)

    return factory


@pytest.fixture
def write_rig(tmp_path):
    """Create a rig working tree holding ``.beads/issues.jsonl``."""

    def factory(name: str, content: str | None) -> Path:
        path = tmp_path / "rigs" / name
        path.mkdir(parents=True, exist_ok=True)
        if content is not None:
            beads_dir = path / ".beads"
            beads_dir.mkdir(exist_ok=True)
            (beads_dir / "issues.jsonl").write_text(content, encoding="utf-8")
        return path

    return factory
