"""
Input validation utilities for AllBeads.

Provides validation functions for:
- Rig names
- Git remote locators
- Bead ids
"""

from __future__ import annotations

import re
from urllib.parse import urlparse


# Regex patterns
RIG_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,99}$")
SCP_REMOTE_PATTERN = re.compile(r"^[\w.-]+@[\w.-]+:[\w./~-]+$")
BEAD_ID_PATTERN = re.compile(r"^[^\s/]+$")

REMOTE_SCHEMES = {"https", "http", "ssh", "git", "file"}


class ValidationError(Exception):
    """Raised when validation fails."""

    def __init__(self, message: str, field: str | None = None):
        """Initialize with message and optional field name."""
        super().__init__(message)
        self.field = field
        self.message = message


def validate_rig_name(value: str) -> str:
    """
    Validate a rig name.

    Rig names appear inside ``bead://<rig>/<id>`` URIs, so slashes and
    whitespace are not allowed.

    Args:
        value: Rig name

    Returns:
        Validated name

    Raises:
        ValidationError: If invalid
    """
    value = value.strip()
    if not RIG_NAME_PATTERN.match(value):
        raise ValidationError(f"Invalid rig name: {value!r}", "name")
    return value


def validate_remote(value: str) -> str:
    """
    Validate a git remote locator.

    Accepts URL remotes (``https://``, ``ssh://``, ``git://``, ``file://``)
    and scp-style remotes (``git@github.com:org/repo.git``).

    Args:
        value: Remote locator

    Returns:
        Validated remote

    Raises:
        ValidationError: If invalid
    """
    value = value.strip()
    if SCP_REMOTE_PATTERN.match(value):
        return value

    parsed = urlparse(value)
    if parsed.scheme not in REMOTE_SCHEMES:
        raise ValidationError(f"Invalid git remote: {value!r}", "remote")
    if parsed.scheme != "file" and not parsed.netloc:
        raise ValidationError(f"Invalid git remote (missing host): {value!r}", "remote")
    if parsed.scheme == "file" and not parsed.path:
        raise ValidationError(f"Invalid git remote (missing path): {value!r}", "remote")
    return value


def validate_bead_id(value: str) -> str:
    """
    Validate a bead id.

    Args:
        value: Bead id

    Returns:
        Validated id

    Raises:
        ValidationError: If invalid
    """
    if not value or not BEAD_ID_PATTERN.match(value):
        raise ValidationError(f"Invalid bead id: {value!r}", "id")
    return value
