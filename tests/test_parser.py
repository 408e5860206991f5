"""
Tests for the line-delimited record parser.
"""

import json

import pytest

from allbeads.models.bead import Status
from allbeads.models.report import RecordError, RecordErrorKind
from allbeads.parser import RecordParser, parse, parse_line


class TestParseLine:
    """Tests for single-line parsing."""

    def test_valid_line(self, record):
        bead = parse_line(json.dumps(record("a1", status="in_progress")), 1)
        assert bead.id == "a1"
        assert bead.status == Status.IN_PROGRESS

    def test_blank_line(self):
        assert parse_line("   ", 3) is None

    def test_malformed_json(self):
        error = parse_line("{not json", 4)
        assert isinstance(error, RecordError)
        assert error.kind == RecordErrorKind.MALFORMED_JSON
        assert error.line == 4

    def test_non_object(self):
        error = parse_line("[1, 2]", 1)
        assert error.kind == RecordErrorKind.MALFORMED_JSON

    def test_missing_required_field(self, record):
        data = record("a1")
        del data["title"]
        error = parse_line(json.dumps(data), 2)
        assert error.kind == RecordErrorKind.MISSING_REQUIRED_FIELD
        assert error.bead_id == "a1"
        assert "title" in error.message

    def test_unknown_status(self, record):
        error = parse_line(json.dumps(record("a1", status="wontfix")), 1)
        assert error.kind == RecordErrorKind.UNKNOWN_STATUS

    def test_invalid_priority(self, record):
        error = parse_line(json.dumps(record("a1", priority="urgent")), 1)
        assert error.kind == RecordErrorKind.INVALID_FIELD

    def test_id_with_slash_rejected(self, record):
        error = parse_line(json.dumps(record("a/1")), 1)
        assert error.kind == RecordErrorKind.INVALID_FIELD

    def test_unknown_fields_tolerated(self, record):
        bead = parse_line(json.dumps(record("a1", compaction_level=2, external_ref="gh-9")), 1)
        assert bead.id == "a1"

    def test_origin_in_record_ignored(self, record):
        bead = parse_line(json.dumps(record("a1", origin="elsewhere")), 1)
        assert bead.origin is None


class TestParse:
    """Tests for whole-file parsing."""

    def test_bad_lines_do_not_abort(self, record, jsonl):
        content = jsonl(record("a1"), record("a2")) + "{broken\n" + jsonl(record("a3"))
        errors = []
        beads = list(parse(content, errors))

        assert [b.id for b in beads] == ["a1", "a2", "a3"]
        assert len(errors) == 1
        assert errors[0].line == 3

    def test_unicode_line_separator_inside_string(self, record):
        content = json.dumps(record("a1", title="first\u2028second"), ensure_ascii=False) + "\n"
        errors = []
        beads = list(parse(content, errors))

        assert errors == []
        assert [b.title for b in beads] == ["first\u2028second"]

    def test_crlf_line_endings(self, record):
        content = json.dumps(record("a1")) + "\r\n" + json.dumps(record("a2")) + "\r\n"
        assert [b.id for b in parse(content)] == ["a1", "a2"]

    def test_is_lazy(self, record, jsonl):
        beads = parse(jsonl(record("a1"), record("a2")))
        assert next(beads).id == "a1"

    def test_reparse_is_identical(self, record, jsonl):
        content = jsonl(record("a1", labels=["x", "y"]), record("a2", depends_on=["a1"]))
        assert list(parse(content)) == list(parse(content))

    def test_empty_content(self):
        assert list(parse("")) == []


class TestRecordParser:
    """Tests for the stateful parser wrapper."""

    def test_collects_errors(self, record, jsonl):
        parser = RecordParser()
        beads = parser.parse_all(jsonl(record("a1")) + "oops\n")
        assert len(beads) == 1
        assert parser.parsed == 1
        assert len(parser.errors) == 1

    def test_errors_reset_between_runs(self, record, jsonl):
        parser = RecordParser()
        parser.parse_all("oops\n")
        parser.parse_all(jsonl(record("a1")))
        assert parser.errors == []

    @pytest.mark.parametrize("labels", [None, "solo", ["a", "b"]])
    def test_label_shapes(self, record, labels):
        bead = parse_line(json.dumps(record("a1", labels=labels)), 1)
        assert isinstance(bead.labels, set)
