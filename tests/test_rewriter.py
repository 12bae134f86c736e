"""Tests for the HTML rewriting pass."""

import base64

import pytest

from conftest import PNG_BYTES
from unbook.errors import MimeTypeError
from unbook.rewriter import SKIP_COVER_ID, RewriteState, rewrite_html

PNG_URI = "data:image/png;base64," + base64.b64encode(PNG_BYTES).decode("ascii")

DOCUMENT = (
    "<html><head>"
    '<link href="style.css" rel="stylesheet" type="text/css"/>'
    "</head><body>"
    '<p class="calibre1">Before<img src="images/a.png" alt="A"/>after</p>'
    "</body></html>"
)


class TestCover:
    def test_cover_is_prepended_to_body(self, make_store):
        store = make_store({"cover.png": PNG_BYTES, "images/a.png": PNG_BYTES})
        state = RewriteState(assets=store, cover_filename="cover.png")
        out = rewrite_html(DOCUMENT, state)

        body = out.split("<body>", 1)[1]
        assert body.startswith("\n<img ")
        cover_tag, rest = body[1:].split("\n", 1)
        assert 'class="unbook-cover"' in cover_tag
        assert 'alt="Book cover"' in cover_tag
        assert f'src="{PNG_URI}"' in cover_tag
        assert rest.startswith(f'<a id="{SKIP_COVER_ID}"></a>\n<p class="calibre1">')
        assert "cover.png" not in store.unread

    def test_no_cover_still_gets_skip_anchor(self, make_store):
        store = make_store({"images/a.png": PNG_BYTES})
        out = rewrite_html(DOCUMENT, RewriteState(assets=store))
        assert f'<body><a id="{SKIP_COVER_ID}"></a><p' in out
        assert "unbook-cover" not in out

    def test_missing_cover_is_recorded(self, make_store):
        store = make_store({"images/a.png": PNG_BYTES})
        state = RewriteState(assets=store, cover_filename="cover.jpg")
        out = rewrite_html(DOCUMENT, state)
        assert f'<body><a id="{SKIP_COVER_ID}"></a><p' in out
        assert store.missing == {"cover.jpg"}


class TestImages:
    def test_img_is_inlined_on_its_own_lines(self, make_store):
        store = make_store({"images/a.png": PNG_BYTES})
        state = RewriteState(assets=store)
        out = rewrite_html(DOCUMENT, state)
        assert "Before<!--\n--><img " in out
        assert f'src="{PNG_URI}"' in out
        assert "/><!--\n-->after" in out
        assert state.inlined == 1
        assert store.unread == set()

    def test_missing_img_is_left_alone(self, make_store):
        store = make_store({})
        state = RewriteState(assets=store)
        out = rewrite_html(DOCUMENT, state)
        assert 'src="images/a.png"' in out
        assert "<!--" not in out
        assert store.missing == {"images/a.png"}
        assert state.inlined == 0

    def test_unknown_extension_is_fatal(self, make_store):
        html = '<html><head></head><body><img src="a.webp"/></body></html>'
        store = make_store({"a.webp": b"RIFF"})
        with pytest.raises(MimeTypeError):
            rewrite_html(html, RewriteState(assets=store))

    def test_svg_image_href(self, make_store):
        html = (
            "<html><head></head><body>"
            '<svg><image href="images/a.png" width="10" height="10"/></svg>'
            "</body></html>"
        )
        store = make_store({"images/a.png": PNG_BYTES})
        state = RewriteState(assets=store)
        out = rewrite_html(html, state)
        assert f'href="{PNG_URI}"' in out
        assert state.inlined == 1

    def test_bytes_input(self, make_store):
        store = make_store({"images/a.png": PNG_BYTES})
        out = rewrite_html(DOCUMENT.replace("after", "après").encode("utf-8"), RewriteState(assets=store))
        assert "après" in out


class TestStylesheetLink:
    def test_converter_stylesheet_is_removed(self, make_store):
        out = rewrite_html(DOCUMENT, RewriteState(assets=make_store({})))
        assert out.startswith("<html><head></head><body>")
        assert "style.css" not in out

    def test_other_links_are_kept(self, make_store):
        html = (
            "<html><head>"
            '<link href="other.css" rel="stylesheet" type="text/css"/>'
            "</head><body></body></html>"
        )
        out = rewrite_html(html, RewriteState(assets=make_store({})))
        assert 'href="other.css"' in out


class TestHandlerTable:
    def test_custom_handlers_run_in_document_order(self, make_store):
        seen = []

        def record(tag, state):
            seen.append(tag.get("id"))

        html = '<html><head></head><body><p id="a"><span id="b"></span></p><p id="c"></p></body></html>'
        rewrite_html(html, RewriteState(assets=make_store({})), handlers=[("p, span", record)])
        assert seen == ["a", "b", "c"]

    def test_removed_element_is_not_offered_to_later_handlers(self, make_store):
        seen = []

        def remove(tag, state):
            tag.decompose()

        def record(tag, state):
            seen.append(tag.get("id"))

        html = '<html><head></head><body><p id="a"><span id="b"></span></p><p id="c"></p></body></html>'
        rewrite_html(
            html,
            RewriteState(assets=make_store({})),
            handlers=[("#a", remove), ("p, span", record)],
        )
        assert seen == ["c"]


class TestSerialization:
    def test_untouched_markup_is_normalized(self, make_store):
        html = (
            "<html><head></head><body>"
            '<p class="x">a&nbsp;b<br>c<input disabled></p>'
            "</body></html>"
        )
        out = rewrite_html(html, RewriteState(assets=make_store({})))
        assert out == (
            "<html><head></head><body>"
            f'<a id="{SKIP_COVER_ID}"></a>'
            '<p class="x">a\xa0b<br/>c<input disabled=""/></p>'
            "</body></html>"
        )
