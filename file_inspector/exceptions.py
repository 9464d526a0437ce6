"""
Custom exception hierarchy for the file inspector.

Only FileUnreadableError reaches callers of FileInspector.describe; the
others are raised inside extractors and turned into "no section" by the
dispatcher.
"""


class FileInspectorError(Exception):
    """Base exception for all file inspector errors."""
    pass


class FileUnreadableError(FileInspectorError):
    """Raised when the target path does not exist or cannot be stat'ed."""
    pass


class ClassificationError(FileInspectorError):
    """Raised when a path cannot be classified at all (e.g. empty path)."""
    pass


class MetadataExtractionError(FileInspectorError):
    """Raised when metadata cannot be extracted from a matched file."""
    pass
