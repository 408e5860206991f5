"""
Identifier types and bead URIs.

``BeadId`` and ``RigId`` are distinct ``NewType`` wrappers around ``str`` so
a type checker rejects a bead id where a rig id is expected. Cross-repository
references use the ``bead://<rig>/<bead-id>`` URI form, which only the
aggregation layer knows how to resolve.
"""

from __future__ import annotations

from typing import NewType

BeadId = NewType("BeadId", str)
RigId = NewType("RigId", str)

URI_SCHEME = "bead://"


def make_uri(rig: str, bead: str) -> str:
    """Build a ``bead://`` URI pointing at ``bead`` inside ``rig``."""
    return f"{URI_SCHEME}{rig}/{bead}"


def is_bead_uri(value: str) -> bool:
    """Check whether a dependency entry is a cross-repository URI."""
    return parse_uri(value) is not None


def parse_uri(value: str) -> tuple[RigId, BeadId] | None:
    """
    Split a ``bead://`` URI into its rig and bead parts.

    Args:
        value: Candidate URI

    Returns:
        ``(rig, bead)`` or None if the value is not a well-formed bead URI
    """
    if not value.startswith(URI_SCHEME):
        return None
    rest = value[len(URI_SCHEME):]
    rig, sep, bead = rest.partition("/")
    if not sep or not rig or not bead or "/" in bead:
        return None
    return RigId(rig), BeadId(bead)


def id_prefix(bead_id: str) -> str | None:
    """Return the prefix of a ``prefix-hash`` bead id (``"ab-12x"`` -> ``"ab"``)."""
    prefix, sep, rest = bead_id.partition("-")
    if not sep or not prefix or not rest:
        return None
    return prefix
