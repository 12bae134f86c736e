"""End-to-end tests for document and archive conversion."""

import base64
import zipfile

import pytest

from conftest import JPEG_BYTES, PNG_BYTES
from unbook import __version__
from unbook.config import ConversionSettings, ConverterReport
from unbook.convert import (
    OUTPUT_PREFIX,
    OUTPUT_SIGNATURE,
    convert_document,
    convert_htmlz,
    get_cover_filename,
    is_unbook_output,
)
from unbook.errors import ArchiveError, ConversionError, MimeTypeError

INDEX_HTML = (
    "<html><head>"
    "<title>A Book</title>"
    '<link href="style.css" rel="stylesheet" type="text/css"/>'
    "</head><body>"
    '<p class="calibre1">Chapter one<img src="images/00001.png" alt=""/></p>'
    '<p class="calibre1"><img src="images/gone.png" alt=""/></p>'
    "</body></html>"
).encode("utf-8")

STYLE_CSS = """\
.calibre {
    display: block;
    font-family: Georgia, serif;
    background-color: #fff
}
.calibre1 {
    text-align: justify;
    line-height: 1.2
}
"""

METADATA_OPF = """\
<?xml version='1.0' encoding='utf-8'?>
<package xmlns="http://www.idpf.org/2007/opf" version="2.0">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/">
    <dc:title>A Book</dc:title>
  </metadata>
  <guide>
    <reference type="toc" title="Contents" href="index.html"/>
    <reference type="cover" title="Cover" href="cover.jpg"/>
  </guide>
</package>
"""


def write_htmlz(path, files):
    with zipfile.ZipFile(path, "w") as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return path


def htmlz_files(**overrides):
    files = {
        "index.html": INDEX_HTML,
        "style.css": STYLE_CSS.encode("utf-8"),
        "metadata.opf": METADATA_OPF.encode("utf-8"),
        "cover.jpg": JPEG_BYTES,
        "images/00001.png": PNG_BYTES,
        "images/00002.jpg": JPEG_BYTES,
    }
    files.update(overrides)
    return {name: data for name, data in files.items() if data is not None}


class TestCoverFilename:
    def test_guide_reference(self):
        assert get_cover_filename(METADATA_OPF) == "cover.jpg"

    def test_no_cover(self):
        assert get_cover_filename("<package><guide/></package>") is None


class TestConvertDocument:
    def convert(self, make_store, **kwargs):
        store = make_store(htmlz_files())
        # these are read by convert_htmlz before conversion starts
        for name in ("index.html", "style.css", "metadata.opf"):
            store.fetch(name)
        output = convert_document(INDEX_HTML, STYLE_CSS, METADATA_OPF, store, **kwargs)
        return output.decode("utf-8"), store

    def test_signature(self, make_store):
        output, _ = self.convert(make_store)
        encoded = output.encode("utf-8")
        assert encoded.startswith(OUTPUT_SIGNATURE)
        assert encoded.startswith(OUTPUT_PREFIX + b"<!--\n\tebook converted to HTML with unbook " + __version__.encode())
        assert is_unbook_output(encoded[:200])

    def test_style_is_injected_in_head(self, make_store):
        output, _ = self.convert(make_store)
        head, body = output.split("</head>", 1)
        assert "<style>\n/* unbook */" in head
        assert "/* calibre */\n" in head
        assert "\n.calibre {\n    display: block;\n" in head
        assert "/* was text-align: justify; */ /* unbook */" in head
        assert "background-color: inherit; /* was background-color: #fff; */ /* unbook */" in head
        assert "font-family: var(--base-font-family); /* was font-family: Georgia, serif */" in head
        assert "<title>A Book</title>" in head
        assert "style.css" not in output.split("-->", 1)[1]

    def test_body(self, make_store):
        output, _ = self.convert(make_store)
        body = output.split("<body>", 1)[1]
        jpeg_uri = "data:image/jpeg;base64," + base64.b64encode(JPEG_BYTES).decode("ascii")
        png_uri = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")
        assert body.startswith("\n<img ")
        assert jpeg_uri in body.split("\n")[1]
        assert png_uri in body
        assert 'src="images/gone.png"' in body

    def test_header_records_bookkeeping(self, make_store):
        output, store = self.convert(make_store)
        header = output.split("-->", 1)[0]
        assert store.unread == {"images/00002.jpg"}
        assert store.missing == {"images/gone.png"}
        assert "(count: 1):\n\t\timages/00002.jpg\n" in header
        assert "(count: 1):\n\t\timages/gone.png\n" in header
        assert "\t\tserif (count: 1):\n\t\t\tGeorgia, serif\n" in header

    def test_report(self, make_store):
        report = ConverterReport(original_name="book.epub", original_size=99, stderr="oops")
        output, _ = self.convert(make_store, report=report)
        assert "\toriginal file name: book.epub\n\toriginal file size: 99\n" in output

    def test_settings(self, make_store):
        settings = ConversionSettings(max_width="40em", append_head='<meta name="x" content="y">')
        output, _ = self.convert(make_store, settings=settings)
        assert "max-width: 40em;" in output
        assert '<meta name="x" content="y">\n<title>' in output

    def test_unexpected_prologue(self, make_store):
        store = make_store(htmlz_files())
        with pytest.raises(ConversionError):
            convert_document(b"<!DOCTYPE html><html><head></head></html>", "", METADATA_OPF, store)


class TestIsUnbookOutput:
    def test_plain_html_is_not(self):
        assert not is_unbook_output(b"<!DOCTYPE html>\n<html><head><title>")
        assert not is_unbook_output(b"")


class TestConvertHtmlz:
    def test_writes_output(self, tmp_path):
        source = write_htmlz(tmp_path / "book.htmlz", htmlz_files())
        target = tmp_path / "book.html"
        assert convert_htmlz(source, target) == target
        data = target.read_bytes()
        assert is_unbook_output(data)
        assert b"\toriginal file name: book.htmlz\n" in data

    def test_refuses_to_overwrite(self, tmp_path):
        source = write_htmlz(tmp_path / "book.htmlz", htmlz_files())
        target = tmp_path / "book.html"
        target.write_bytes(b"keep me")
        with pytest.raises(ConversionError):
            convert_htmlz(source, target)
        assert target.read_bytes() == b"keep me"

    def test_force_overwrites(self, tmp_path):
        source = write_htmlz(tmp_path / "book.htmlz", htmlz_files())
        target = tmp_path / "book.html"
        target.write_bytes(b"old")
        convert_htmlz(source, target, force=True)
        assert is_unbook_output(target.read_bytes())

    @pytest.mark.parametrize("name", ["index.html", "style.css", "metadata.opf"])
    def test_required_files(self, tmp_path, name):
        source = write_htmlz(tmp_path / "book.htmlz", htmlz_files(**{name: None}))
        with pytest.raises(ConversionError, match=name):
            convert_htmlz(source, tmp_path / "book.html")

    def test_index_prologue(self, tmp_path):
        files = htmlz_files(**{"index.html": b"<!DOCTYPE html><html><head></head></html>"})
        source = write_htmlz(tmp_path / "book.htmlz", files)
        with pytest.raises(ConversionError):
            convert_htmlz(source, tmp_path / "book.html")

    def test_not_a_zip(self, tmp_path):
        source = tmp_path / "book.htmlz"
        source.write_bytes(b"definitely not a zip")
        with pytest.raises(ArchiveError):
            convert_htmlz(source, tmp_path / "book.html")

    def test_failed_conversion_writes_nothing(self, tmp_path):
        files = htmlz_files(
            **{
                "index.html": b'<html><head></head><body><img src="a.webp"/></body></html>',
                "a.webp": b"RIFF",
            }
        )
        source = write_htmlz(tmp_path / "book.htmlz", files)
        target = tmp_path / "book.html"
        with pytest.raises(MimeTypeError):
            convert_htmlz(source, target)
        assert not target.exists()
