"""
Line-delimited record parser.

Each physical line of an ``issues.jsonl`` file is one JSON object. Lines are
decoded into a permissive :class:`RawRecord` first (any field is accepted)
and then projected into the strict :class:`Bead` shape, so fields added later
by a repository's own tooling never break aggregation. A bad line is skipped
and reported; it never aborts the rest of the file.
"""

from __future__ import annotations

import json
from typing import Any, Iterator

from pydantic import BaseModel, ConfigDict, ValidationError

from allbeads.models.bead import Bead
from allbeads.models.report import RecordError, RecordErrorKind
from allbeads.utils import validators
from allbeads.utils.helpers import ensure_list
from allbeads.utils.logger import get_logger

logger = get_logger(__name__)

REQUIRED_FIELDS = (
    "id",
    "title",
    "status",
    "priority",
    "issue_type",
    "created_at",
    "updated_at",
)


class RawRecord(BaseModel):
    """Permissive view of one source record; unknown keys land in ``model_extra``."""

    model_config = ConfigDict(extra="allow")

    id: Any = None
    title: Any = None
    status: Any = None
    priority: Any = None
    issue_type: Any = None
    created_at: Any = None
    updated_at: Any = None

    def missing_fields(self) -> list[str]:
        missing = []
        for name in REQUIRED_FIELDS:
            value = getattr(self, name)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing.append(name)
        return missing

    @property
    def unknown_fields(self) -> list[str]:
        return sorted(self.model_extra or {})

    def to_bead_data(self) -> dict[str, Any]:
        """Merge the declared and extra fields into kwargs for :class:`Bead`."""
        data = dict(self.model_extra or {})
        data.update({name: getattr(self, name) for name in REQUIRED_FIELDS})
        if "labels" in data:
            data["labels"] = ensure_list(data["labels"])
        # The aggregator owns origin tagging.
        data.pop("origin", None)
        return data


def _classify(error: ValidationError) -> RecordErrorKind:
    for detail in error.errors():
        if detail.get("loc", ())[:1] == ("status",):
            return RecordErrorKind.UNKNOWN_STATUS
    for detail in error.errors():
        if detail.get("type") == "missing":
            return RecordErrorKind.MISSING_REQUIRED_FIELD
    return RecordErrorKind.INVALID_FIELD


def _describe(error: ValidationError) -> str:
    parts = []
    for detail in error.errors():
        loc = ".".join(str(p) for p in detail.get("loc", ())) or "record"
        parts.append(f"{loc}: {detail.get('msg', 'invalid')}")
    return "; ".join(parts)


def parse_line(line: str, line_number: int) -> Bead | RecordError | None:
    """
    Parse one physical line.

    Returns:
        A Bead, a RecordError describing why the line was skipped, or None
        for blank lines
    """
    text = line.strip()
    if not text:
        return None

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as e:
        return RecordError(
            line=line_number,
            kind=RecordErrorKind.MALFORMED_JSON,
            message=f"invalid JSON: {e.msg} at column {e.colno}",
        )
    if not isinstance(payload, dict):
        return RecordError(
            line=line_number,
            kind=RecordErrorKind.MALFORMED_JSON,
            message=f"expected a JSON object, got {type(payload).__name__}",
        )

    raw = RawRecord.model_validate(payload)
    bead_id = str(raw.id) if raw.id is not None else None

    missing = raw.missing_fields()
    if missing:
        return RecordError(
            line=line_number,
            kind=RecordErrorKind.MISSING_REQUIRED_FIELD,
            message=f"missing required field(s): {', '.join(missing)}",
            bead_id=bead_id,
        )

    try:
        validators.validate_bead_id(bead_id)
    except validators.ValidationError as e:
        return RecordError(
            line=line_number,
            kind=RecordErrorKind.INVALID_FIELD,
            message=e.message,
            bead_id=bead_id,
        )

    try:
        return Bead.model_validate(raw.to_bead_data())
    except ValidationError as e:
        return RecordError(
            line=line_number,
            kind=_classify(e),
            message=_describe(e),
            bead_id=bead_id,
        )


def parse(raw_content: str, errors: list[RecordError] | None = None) -> Iterator[Bead]:
    """
    Lazily parse line-delimited records into beads.

    The returned generator is single-pass. Skipped lines are appended to
    ``errors`` when a list is supplied.

    Args:
        raw_content: Full content of an issues file
        errors: Optional sink for per-line errors

    Yields:
        Beads in file order
    """
    # Only \n ends a record; JSON strings may hold other Unicode line breaks.
    for line_number, line in enumerate(raw_content.split("\n"), start=1):
        result = parse_line(line.rstrip("\r"), line_number)
        if result is None:
            continue
        if isinstance(result, RecordError):
            logger.debug("Skipping record: %s", result.to_summary())
            if errors is not None:
                errors.append(result)
            continue
        yield result


class RecordParser:
    """
    Stateful wrapper around :func:`parse` that keeps the errors of the last run.

    Example:
        >>> parser = RecordParser()
        >>> beads = parser.parse_all(content)
        >>> for err in parser.errors:
        ...     print(err.to_summary())
    """

    def __init__(self) -> None:
        self.errors: list[RecordError] = []
        self.parsed = 0

    def parse(self, raw_content: str) -> Iterator[Bead]:
        """Parse content, resetting the error list."""
        self.errors = []
        self.parsed = 0
        for bead in parse(raw_content, self.errors):
            self.parsed += 1
            yield bead

    def parse_all(self, raw_content: str) -> list[Bead]:
        return list(self.parse(raw_content))
