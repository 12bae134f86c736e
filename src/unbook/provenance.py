"""Build the ``<head>`` content injected into the output document.

The leading ``<!--`` block records where the document came from: the original
file, which archive entries were used or missing, how the font stacks were
classified and what the converter logged. It is meant for people; other
tooling only relies on its first line, which marks a document as unbook
output.
"""

from __future__ import annotations

import re
from textwrap import dedent
from typing import Iterable, List, Optional

from unbook.config import ConversionSettings, ConverterReport, TextFragmentsPolyfill
from unbook.css import GenericFamilyMap
from unbook.font import GenericFontFamily

__all__ = [
    "HEADER_FIRST_LINE",
    "build_extra_head",
    "build_provenance_header",
    "content_security_policy",
    "escape_html_comment_close",
    "filter_converter_log",
    "indent",
    "text_fragments_polyfill",
]

# Changing this breaks detection of documents unbook already produced.
HEADER_FIRST_LINE = "<!--\n\tebook converted to HTML with unbook "

_LINE_START = re.compile(r"^", re.M)

_FONT_BUCKETS = (
    ("unknown", None),
    ("serif", GenericFontFamily.SERIF),
    ("sans-serif", GenericFontFamily.SANS_SERIF),
    ("monospace", GenericFontFamily.MONOSPACE),
    ("fantasy", GenericFontFamily.FANTASY),
    ("cursive", GenericFontFamily.CURSIVE),
)


def escape_html_comment_close(text: str) -> str:
    """Make ``text`` safe to embed inside an HTML comment."""
    return text.replace("-->", r"-[breaking up an \x2D\x2D\3E]->")


def indent(prefix: str, text: str) -> str:
    """Prefix every line of ``text``, including an empty one."""
    return _LINE_START.sub(prefix, text)


def filter_converter_log(log: str) -> str:
    """Hide the input and output paths in an ``ebook-convert -vv`` log."""
    out: List[str] = []
    fix_next_line = False
    for line in log.splitlines():
        if fix_next_line:
            fix_next_line = False
            if line.startswith("on "):
                out.append("on […]\n")
        elif line.startswith("InputFormatPlugin: "):
            fix_next_line = True
            out.append(f"{line}\n")
        elif line.startswith("HTMLZ output written to "):
            out.append("HTMLZ output written to […]\n")
        elif line.startswith("Output saved to "):
            out.append("Output saved to […]\n")
        else:
            out.append(f"{line}\n")
    return "".join(out)


def _listing(prefix: str, items: Iterable[str]) -> str:
    return indent(prefix, escape_html_comment_close("\n".join(sorted(items))))


def build_provenance_header(
    version: str,
    report: ConverterReport,
    metadata: str,
    unread: Iterable[str],
    missing: Iterable[str],
    family_map: GenericFamilyMap,
) -> str:
    """Return the ``<!-- ... -->`` provenance block.

    Args:
        version: unbook version written into the first line.
        report: Original file name/size and the converter's output.
        metadata: The ``metadata.opf`` text.
        unread: Archive entries that were never read.
        missing: Referenced files absent from the archive.
        family_map: Font stacks by generic family.

    Returns:
        The comment block, starting with :data:`HEADER_FIRST_LINE`.
    """
    unread = sorted(unread)
    missing = sorted(missing)
    stderr = indent("\t\t", escape_html_comment_close(report.stderr))
    size = "" if report.original_size is None else str(report.original_size)

    lines: List[str] = [
        f"{HEADER_FIRST_LINE}{version}",
        "",
        f"\toriginal file name: {escape_html_comment_close(report.original_name)}",
        f"\toriginal file size: {size}",
        "",
        "\tmetadata.opf:",
        indent("\t\t", escape_html_comment_close(metadata)),
        f"\tHTMLZ files which were discarded because they were not referenced by the HTML (count: {len(unread)}):",
        _listing("\t\t", unread),
        "\tnote: if this is just one image, it is typically because Calibre erroneously duplicated the cover image.",
        "",
        f"\tfiles which were referenced but missing in the HTMLZ (count: {len(missing)}):",
        _listing("\t\t", missing),
        "",
        "\tfont stacks:",
    ]
    for label, family in _FONT_BUCKETS:
        stacks = family_map.get(family, set())
        lines.append(f"\t\t{label} (count: {len(stacks)}):")
        lines.append(_listing("\t\t\t", stacks))
    lines += [
        "",
        f"\tcalibre stderr output (lines: {len(stderr.splitlines())}):",
        stderr,
        "",
        "\tcalibre conversion log:",
        indent("\t\t", escape_html_comment_close(filter_converter_log(report.stdout))),
        "-->",
    ]
    return "\n".join(lines)


def content_security_policy(settings: ConversionSettings) -> str:
    """Return a CSP ``<meta>`` that keeps the book from loading external resources."""
    return dedent(
        f"""\
        <meta http-equiv="Content-Security-Policy" content="
            default-src 'none' {settings.csp_default_src};
            font-src 'self' data: {settings.csp_font_src};
            img-src 'self' data: {settings.csp_img_src};
            style-src 'unsafe-inline' {settings.csp_style_src};
            media-src 'self' data: {settings.csp_media_src};
            script-src 'unsafe-inline' data: {settings.csp_script_src};
            object-src 'self' data: {settings.csp_object_src};
        ">"""
    )


def text_fragments_polyfill(mode: TextFragmentsPolyfill) -> str:
    """Return the ``<script>`` loading the Text Fragments polyfill, if any."""
    if mode is TextFragmentsPolyfill.UNPKG:
        return dedent(
            """
            <script type="module">
            if (!('fragmentDirective' in Location.prototype) && !('fragmentDirective' in document)) {
                import('https://unpkg.com/text-fragments-polyfill');
            }
            </script>
            """
        )
    return ""


def build_extra_head(
    header: str,
    settings: ConversionSettings,
    preamble_css: str,
    fixed_css: str,
    polyfill: Optional[str] = None,
) -> str:
    """Assemble everything inserted right after ``<html><head>``."""
    if polyfill is None:
        polyfill = text_fragments_polyfill(settings.text_fragments_polyfill)
    return "\n".join(
        [
            header,
            content_security_policy(settings),
            # viewport-fit=cover keeps iOS Safari from painting the body
            # background into the safe area
            '<meta name="viewport" content="width=device-width, viewport-fit=cover" />',
            '<meta name="referrer" content="no-referrer" />',
            "<style>",
            preamble_css,
            "",
            fixed_css,
            "</style>",
            polyfill,
            settings.append_head,
            "",
        ]
    )
