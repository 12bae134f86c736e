"""Rewrite the converter's HTML into a self-contained document body.

The document is walked once, in document order, and each element is offered
to a table of ``(css selector, handler)`` pairs. Handlers share one
:class:`RewriteState` passed to them explicitly; there is never more than one
handler running, so the state needs no locking.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Union

from bs4 import BeautifulSoup, Comment, Tag
from bs4.element import NavigableString

from unbook.assets import AssetStore
from unbook.logger import get_console, get_logger, get_progress

_console = get_console()
log = get_logger(console=_console)

__all__ = [
    "DEFAULT_HANDLERS",
    "ElementHandler",
    "RewriteState",
    "SKIP_COVER_ID",
    "parse_html",
    "rewrite_html",
]

SKIP_COVER_ID = "unbook-skip-cover"
COVER_CLASS = "unbook-cover"
STYLESHEET_LINK = 'link[href="style.css"][rel="stylesheet"][type="text/css"]'


@dataclass
class RewriteState:
    """State owned by a single rewrite pass."""

    assets: AssetStore
    cover_filename: Optional[str] = None
    inlined: int = 0


ElementHandler = Callable[[Tag, RewriteState], None]


def prepend_cover(body: Tag, state: RewriteState) -> None:
    """Put the cover image and a skip-cover anchor at the top of ``<body>``."""
    soup = _soup_of(body)
    anchor = soup.new_tag("a", attrs={"id": SKIP_COVER_ID})
    cover_uri = None
    if state.cover_filename:
        cover_uri = state.assets.fetch_data_uri(state.cover_filename)
        if cover_uri is None:
            log.warning(f"Cover image {state.cover_filename} is not in the archive")
    if cover_uri is None:
        body.insert(0, anchor)
        return
    cover = soup.new_tag(
        "img", attrs={"class": COVER_CLASS, "alt": "Book cover", "src": cover_uri}
    )
    for position, node in enumerate(
        (NavigableString("\n"), cover, NavigableString("\n"), anchor, NavigableString("\n"))
    ):
        body.insert(position, node)


def inline_img(img: Tag, state: RewriteState) -> None:
    """Replace ``src`` with a data URI and put the image on its own lines."""
    src = str(img["src"])
    data_uri = state.assets.fetch_data_uri(src)
    if data_uri is None:
        return
    img["src"] = data_uri
    # <!--\n--> keeps the long data URI out of the surrounding text lines
    img.insert_before(Comment("\n"))
    img.insert_after(Comment("\n"))
    state.inlined += 1


def inline_svg_image(image: Tag, state: RewriteState) -> None:
    """Replace an SVG ``<image href>`` with a data URI."""
    href = str(image["href"])
    data_uri = state.assets.fetch_data_uri(href)
    if data_uri is None:
        return
    image["href"] = data_uri
    state.inlined += 1


def remove_stylesheet_link(link: Tag, state: RewriteState) -> None:
    """Drop the external stylesheet; its rules are injected into ``<head>``."""
    link.decompose()


DEFAULT_HANDLERS: Tuple[Tuple[str, ElementHandler], ...] = (
    ("body", prepend_cover),
    ("img[src]", inline_img),
    ("image[href]", inline_svg_image),
    (STYLESHEET_LINK, remove_stylesheet_link),
)


def parse_html(html: Union[bytes, str]) -> BeautifulSoup:
    """Parse converter HTML without adding or reordering elements."""
    if isinstance(html, bytes):
        return BeautifulSoup(html, "html.parser", from_encoding="utf-8")
    return BeautifulSoup(html, "html.parser")


def rewrite_html(
    html: Union[bytes, str],
    state: RewriteState,
    handlers: Sequence[Tuple[str, ElementHandler]] = DEFAULT_HANDLERS,
) -> str:
    """Run every matching handler over the document and serialize it.

    Elements are visited in document order and each sees the handlers in table
    order. Elements inserted by a handler are not visited; an element removed
    by a handler is not offered to the remaining handlers.

    Args:
        html: The converter's HTML document.
        state: Asset store and cover for this pass.
        handlers: ``(css selector, handler)`` pairs.

    Returns:
        The rewritten document.

    Raises:
        MimeTypeError: If an image found in the archive has an unknown extension.
        ArchiveError: If an archive entry cannot be read.
    """
    soup = parse_html(html)
    elements: List[Tag] = [el for el in soup.find_all(True) if isinstance(el, Tag)]
    log.trace(f"Rewriting {len(elements)} elements")

    progress = get_progress(_console)
    with progress:
        task = progress.add_task("Inlining assets...", total=len(elements))
        for element in elements:
            for selector, handler in handlers:
                if element.decomposed:
                    break
                if element.css.match(selector):
                    handler(element, state)
            progress.advance(task)

    log.info(
        f"Inlined {state.inlined} images; {len(state.assets.missing)} referenced files missing"
    )
    return soup.decode()


def _soup_of(tag: Tag) -> BeautifulSoup:
    root = tag
    while root.parent is not None:
        root = root.parent
    if not isinstance(root, BeautifulSoup):
        raise TypeError(f"<{tag.name}> is not attached to a document")
    return root
