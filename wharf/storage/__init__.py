"""Filesystem operations for deployments."""

from wharf.storage.archive import discard, extract_tar_gz, extract_zip, move_file
from wharf.storage.fs import clear_directory
from wharf.storage.uploads import UploadArtifact, temporary_upload

__all__ = [
    "UploadArtifact",
    "clear_directory",
    "discard",
    "extract_tar_gz",
    "extract_zip",
    "move_file",
    "temporary_upload",
]
