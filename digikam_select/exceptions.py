"""
Exception hierarchy for digikam-select.

Fatal errors (configuration, database access) stop the run before any file
is touched. Per-file errors derive from MaterializeError and are handled
inside the materialization loop.
"""

from pathlib import Path
from typing import List, Optional


class DigikamSelectError(Exception):
    """Base exception for all digikam-select errors."""
    pass


class ConfigurationError(DigikamSelectError):
    """Raised when options are invalid or incomplete."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "invalid configuration")


class DataAccessError(DigikamSelectError):
    """Raised when the digiKam database cannot be opened or queried."""
    pass


class MaterializeError(DigikamSelectError):
    """Base for errors that abort a single file but not the run."""

    def __init__(self, message: str, source: Optional[Path] = None,
                 target: Optional[Path] = None):
        self.source = source
        self.target = target
        super().__init__(message)


class SourceUnavailableError(MaterializeError):
    """Source file is missing or unreadable."""
    pass


class TargetConflictError(MaterializeError):
    """Target already exists and overwriting was not requested."""
    pass


class CrossDeviceLinkError(MaterializeError):
    """Hard link requested across filesystems."""
    pass


class ConversionError(MaterializeError):
    """The image conversion executable failed."""
    pass


class TargetWriteError(MaterializeError):
    """Target directory or file could not be written."""
    pass
