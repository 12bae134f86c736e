"""Read assets out of the converter's archive and keep count of what was used.

The provenance header reports which archive entries were never read (usually
a duplicated cover image) and which referenced files were absent, so every
lookup during a conversion goes through one :class:`AssetStore`.
"""

from __future__ import annotations

import base64
import zipfile
import zlib
from typing import Dict, Optional, Protocol, Set

from unbook.errors import ArchiveError, MimeTypeError
from unbook.logger import get_logger

log = get_logger()

__all__ = ["Archive", "AssetStore", "MIME_TYPES", "get_mime_type", "to_data_uri"]

MIME_TYPES: Dict[str, str] = {
    "gif": "image/gif",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "svg": "image/svg+xml",
}


class Archive(Protocol):
    """The part of :class:`zipfile.ZipFile` the store relies on.

    ``read`` must raise ``KeyError`` for a name that is not in the archive.
    """

    def namelist(self) -> list[str]: ...

    def read(self, name: str) -> bytes: ...


class AssetStore:
    """Name-addressed access to the archive with read/missing bookkeeping.

    ``unread`` starts as every file entry and only ever shrinks; ``missing``
    collects requested names the archive does not have, whether or not they
    were ever listed.
    """

    def __init__(self, archive: Archive) -> None:
        self._archive = archive
        try:
            names = archive.namelist()
        except (zipfile.BadZipFile, OSError) as exc:
            raise ArchiveError(f"Failed to list archive entries: {exc}") from exc
        self.unread: Set[str] = {
            name for name in names if not name.endswith(("/", "\\"))
        }
        self.missing: Set[str] = set()
        log.trace(f"AssetStore opened with {len(self.unread)} files")

    def fetch(self, name: str) -> Optional[bytes]:
        """Return the bytes of ``name``, or ``None`` if the archive lacks it.

        Raises:
            ArchiveError: If the entry exists but cannot be read.
        """
        try:
            data = self._archive.read(name)
        except KeyError:
            log.debug(f"Referenced file is missing from the archive: {name}")
            self.missing.add(name)
            return None
        except (
            zipfile.BadZipFile,
            zlib.error,
            OSError,
            EOFError,
            NotImplementedError,
            # encrypted entries
            RuntimeError,
        ) as exc:
            raise ArchiveError(f"Failed to read {name!r} from the archive: {exc}") from exc
        self.unread.discard(name)
        return data

    def fetch_data_uri(self, name: str) -> Optional[str]:
        """Fetch ``name`` and encode it as a data URI; ``None`` when missing.

        Raises:
            MimeTypeError: If ``name`` was found but has no known image extension.
            ArchiveError: If the entry exists but cannot be read.
        """
        data = self.fetch(name)
        if data is None:
            return None
        return to_data_uri(name, data)


def get_mime_type(filename: str) -> str:
    """Return the MIME type for the extension of ``filename``.

    A wrong or missing type would corrupt the data URI, so unknown
    extensions are an error rather than a guess.

    Raises:
        MimeTypeError: If there is no extension or it is not in :data:`MIME_TYPES`.
    """
    _, dot, ext = filename.rpartition(".")
    if not dot:
        raise MimeTypeError(f"No extension for {filename!r}")
    mime_type = MIME_TYPES.get(ext.lower())
    if mime_type is None:
        raise MimeTypeError(f"No mimetype for extension {ext.lower()!r} of {filename!r}")
    return mime_type


def to_data_uri(filename: str, data: bytes) -> str:
    """Encode ``data`` as a base64 data URI typed by ``filename``'s extension."""
    mime_type = get_mime_type(filename)
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"
