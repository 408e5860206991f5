"""Record parser package."""

from allbeads.parser.records import RawRecord, RecordParser, parse, parse_line

__all__ = [
    "RawRecord",
    "RecordParser",
    "parse",
    "parse_line",
]
