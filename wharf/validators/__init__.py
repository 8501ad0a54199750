"""Path validation and authorization."""

from wharf.validators.path import (
    is_authorized,
    is_valid_subdirectory,
    resolve_target_dir,
    validate_relative_path,
)

__all__ = [
    "is_authorized",
    "is_valid_subdirectory",
    "resolve_target_dir",
    "validate_relative_path",
]
