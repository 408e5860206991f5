"""
Utility modules for AllBeads.

This package provides common utilities:
- logger: Structured logging
- validators: Input validation
- helpers: Helper functions
"""

from allbeads.utils.logger import (
    get_logger,
    setup_logging,
    LogLevel,
)
from allbeads.utils.validators import (
    ValidationError,
    validate_rig_name,
    validate_remote,
    validate_bead_id,
)
from allbeads.utils.helpers import (
    truncate_string,
    deduplicate,
    format_duration,
    hash_string,
    ensure_list,
)

__all__ = [
    # Logger
    "get_logger",
    "setup_logging",
    "LogLevel",
    # Validators
    "ValidationError",
    "validate_rig_name",
    "validate_remote",
    "validate_bead_id",
    # Helpers
    "truncate_string",
    "deduplicate",
    "format_duration",
    "hash_string",
    "ensure_list",
]
