"""Exceptions raised by unbook.

Only fatal conditions are exceptions. A missing asset, an unclassified font
stack, an unparseable color or an unmatched CSS block are normal results and
never surface here.
"""

from __future__ import annotations


class UnbookError(RuntimeError):
    """Base class for every fatal conversion error."""


class ConversionError(UnbookError):
    """Raised when the input bundle cannot be turned into an output document."""


class ArchiveError(UnbookError):
    """Raised when the asset archive is corrupt or an entry cannot be read."""


class MimeTypeError(UnbookError):
    """Raised when an inlined file has no known MIME type for its extension."""
