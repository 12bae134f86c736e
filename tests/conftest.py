"""Shared fixtures for the unbook test suite."""

import io
import os
import tempfile
import zipfile
from typing import Callable, Dict

import pytest

# The logger creates its file sink at import time; keep it out of the checkout.
os.environ.setdefault("UNBOOK_LOG_DIR", tempfile.mkdtemp(prefix="unbook-logs-"))
os.environ.setdefault("UNBOOK_LOG_LEVEL", "ERROR")

from unbook.assets import AssetStore  # noqa: E402
from unbook.config import FontReplacementOptions  # noqa: E402

PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png"
JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"


def build_zip(files: Dict[str, bytes]) -> zipfile.ZipFile:
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    buffer.seek(0)
    return zipfile.ZipFile(buffer)


@pytest.fixture
def make_store() -> Callable[[Dict[str, bytes]], AssetStore]:
    archives = []

    def factory(files: Dict[str, bytes]) -> AssetStore:
        archive = build_zip(files)
        archives.append(archive)
        return AssetStore(archive)

    yield factory
    for archive in archives:
        archive.close()


@pytest.fixture
def options() -> FontReplacementOptions:
    return FontReplacementOptions(
        replace_serif_and_sans_serif="never",
        replace_monospace="never",
    )
