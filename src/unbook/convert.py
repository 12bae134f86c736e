"""Turn converter output into one self-contained HTML document.

:func:`convert_document` works on in-memory inputs: the HTML, the CSS, the
``metadata.opf`` text and an :class:`~unbook.assets.AssetStore` over the rest
of the bundle. :func:`convert_htmlz` is the same thing for an HTMLZ archive on
disk; it writes the output file only once the whole document has been built,
so a failed conversion leaves nothing behind.
"""

from __future__ import annotations

import zipfile
from pathlib import Path
from typing import Optional, Union

from bs4 import BeautifulSoup

from unbook import __version__
from unbook.assets import AssetStore
from unbook.config import ConversionSettings, ConverterReport
from unbook.css import fix_css, get_generic_font_family_map, top_css
from unbook.errors import ArchiveError, ConversionError
from unbook.logger import get_logger
from unbook.provenance import HEADER_FIRST_LINE, build_extra_head, build_provenance_header
from unbook.rewriter import RewriteState, rewrite_html

log = get_logger()

__all__ = [
    "INPUT_PREFIX",
    "OUTPUT_PREFIX",
    "OUTPUT_SIGNATURE",
    "convert_document",
    "convert_htmlz",
    "get_cover_filename",
    "is_unbook_output",
]

INPUT_PREFIX = "<html><head>"
# no reason to render converted books in quirks mode
OUTPUT_PREFIX = b"<!DOCTYPE html>\n<html><head>"
OUTPUT_SIGNATURE = OUTPUT_PREFIX + HEADER_FIRST_LINE.encode("utf-8")


def is_unbook_output(head: bytes) -> bool:
    """Return True if ``head`` (the first bytes of a file) is unbook output."""
    return head.startswith(OUTPUT_SIGNATURE)


def get_cover_filename(metadata: str) -> Optional[str]:
    """Return the ``href`` of the guide reference typed ``cover``, if any."""
    soup = BeautifulSoup(metadata, "xml")
    reference = soup.find("reference", attrs={"type": "cover"})
    if reference is None:
        return None
    href = reference.get("href")
    return str(href) if href else None


def convert_document(
    html: Union[bytes, str],
    css: str,
    metadata: str,
    assets: AssetStore,
    settings: Optional[ConversionSettings] = None,
    report: Optional[ConverterReport] = None,
) -> bytes:
    """Build the output document.

    Args:
        html: The converter's HTML, starting with ``<html><head>``.
        css: The converter's stylesheet.
        metadata: The ``metadata.opf`` document.
        assets: Store over the bundle's files; its read/missing sets end up in
            the provenance header.
        settings: Conversion settings; defaults when omitted.
        report: The converter run, for the provenance header.

    Returns:
        The UTF-8 encoded output document.

    Raises:
        ConversionError: If the HTML does not have the expected prologue.
        MimeTypeError: If an inlined image has an unknown extension.
        ArchiveError: If an archive entry cannot be read.
    """
    settings = settings or ConversionSettings()
    report = report or ConverterReport()
    fonts = settings.fonts

    # The replacement decision needs every font stack in the document first.
    family_map = get_generic_font_family_map(css)
    fixed_css = fix_css(
        css,
        fonts,
        family_map,
        settings.inside_bgcolor,
        settings.inside_bgcolor_similarity_threshold,
        heuristics=settings.heuristics,
    )

    state = RewriteState(assets=assets, cover_filename=get_cover_filename(metadata))
    log.debug(f"Cover image: {state.cover_filename}")
    rewritten = rewrite_html(html, state)
    if not rewritten.startswith(INPUT_PREFIX):
        raise ConversionError(f"HTML does not start with {INPUT_PREFIX}")

    # The header lists unread files, so it is built after the rewrite.
    header = build_provenance_header(
        __version__,
        report,
        metadata,
        assets.unread,
        assets.missing,
        family_map,
    )
    preamble = top_css(
        fonts,
        settings.max_width,
        settings.inside_margin_when_wide,
        settings.inside_margin_when_narrow,
        settings.outside_bgcolor,
        settings.inside_bgcolor,
    )
    extra_head = build_extra_head(header, settings, preamble, fixed_css)
    return b"".join(
        [
            OUTPUT_PREFIX,
            extra_head.encode("utf-8"),
            rewritten[len(INPUT_PREFIX):].encode("utf-8"),
        ]
    )


def _read_text(assets: AssetStore, name: str) -> str:
    data = assets.fetch(name)
    if data is None:
        raise ConversionError(f"{name} not found in HTMLZ")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise ConversionError(f"Failed to parse {name} in HTMLZ as UTF-8") from exc


def convert_htmlz(
    htmlz_path: Union[str, Path],
    output_path: Union[str, Path],
    settings: Optional[ConversionSettings] = None,
    report: Optional[ConverterReport] = None,
    force: bool = False,
) -> Path:
    """Convert an HTMLZ archive and write the result to ``output_path``.

    Args:
        htmlz_path: Archive holding ``index.html``, ``style.css``,
            ``metadata.opf`` and the referenced files.
        output_path: Destination of the HTML document.
        settings: Conversion settings; read from the environment when omitted.
        report: The converter run; the archive name is used when omitted.
        force: Overwrite an existing output file.

    Returns:
        The path written.

    Raises:
        ConversionError: If the output exists (without ``force``) or the
            archive lacks a required file.
        ArchiveError: If the archive cannot be opened or read.
    """
    htmlz_path = Path(htmlz_path)
    output_path = Path(output_path)
    if output_path.exists() and not force:
        raise ConversionError(
            f"output file {output_path} already exists; use force to overwrite"
        )
    settings = settings or ConversionSettings.from_env()
    report = report or ConverterReport(original_name=htmlz_path.name)

    log.info(f"Converting {htmlz_path}")
    try:
        archive = zipfile.ZipFile(htmlz_path)
    except (zipfile.BadZipFile, OSError) as exc:
        raise ArchiveError(f"failed to read {htmlz_path} or parse it as a ZIP file") from exc

    with archive:
        log.debug(f"Files inside HTMLZ: {archive.namelist()}")
        assets = AssetStore(archive)
        html = assets.fetch("index.html")
        if html is None:
            raise ConversionError("index.html not found in HTMLZ")
        if not html.startswith(INPUT_PREFIX.encode("ascii")):
            raise ConversionError(f"index.html in HTMLZ does not start with {INPUT_PREFIX}")
        css = _read_text(assets, "style.css")
        metadata = _read_text(assets, "metadata.opf")
        output = convert_document(html, css, metadata, assets, settings, report)

    mode = "wb" if force else "xb"
    try:
        with output_path.open(mode) as handle:
            handle.write(output)
    except FileExistsError as exc:
        raise ConversionError(
            f"output file {output_path} already exists; use force to overwrite"
        ) from exc
    log.success(f"Wrote {output_path} ({len(output)} bytes)")
    return output_path
