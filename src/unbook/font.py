"""Classify CSS font stacks into generic font families.

Books don't always end a ``font-family`` list with a generic family, so the
web safe fonts and the faces commonly seen in converted ebooks are listed here.

Based on https://www.w3.org/Style/Examples/007/fonts.en.html with additions from
https://developer.mozilla.org/en-US/docs/Web/CSS/font-family and
https://en.wikipedia.org/wiki/List_of_typefaces_included_with_Microsoft_Windows
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

__all__ = [
    "GenericFontFamily",
    "LOWER_FACE_TO_GENERIC_FAMILY",
    "classify_font_family",
    "parse_font_family_list",
]


class GenericFontFamily(str, Enum):
    """The generic families a concrete face can be bucketed into."""

    SERIF = "serif"
    SANS_SERIF = "sans-serif"
    MONOSPACE = "monospace"
    CURSIVE = "cursive"
    FANTASY = "fantasy"


SERIF_FACES: Tuple[str, ...] = (
    "Times",
    "TimesBold",
    "TimesBoldItalic",
    "TimesItalic",
    "Timesb",
    "Timesbi",
    "Timesbd",
    "Timesi",
    "Times (T1)",
    "Times New Roman",
    "Times New Roman Bold",
    "Times New Roman Bold Italic",
    "Times New Roman Italic",
    "Times New RomanB",
    "Times New RomanBI",
    "Times New RomanI",
    "TimesNewRomanPSMT",
    "Antiqua",
    "ANTQUAB",
    "ANTQUABI",
    "ANTQUAI",
    "Book Antiqua",
    "Didot",
    "Georgia",
    "Cambria",
    "Baskerville",
    "BaskervilleBold",
    "Palatino",
    "Palatino Linotype",
    "Palatino LT",
    "Garamond",
    "Adobe Garamond",
    "Adobe Garamond Pro",
    "AGaramondPro",
    "EB Garamond",
    "URW Palladio L",
    "Bookman",
    "Bookman Old Style",
    "URW Bookman L",
    "New Century Schoolbook",
    "Century Schoolbook",
    "TeX Gyre Schola",
    "TeX Gyre Pagella",
    "TeX Gyre Termes",
    "American Typewriter",
    "BergamoStd",
    "Charis",
    "CharisSIL",
    "Charis SIL",
    "Charis SIL Regular",
    "Charis SIL Bold",
    "Charis SIL Bold Italic",
    "Charis SIL Italic",
    "CharisSILR",
    "CharisSILB",
    "CharisSILBI",
    "CharisSILI",
    "Bitstream Vera Serif",
    "DejaVu Serif",
    "DejaVu Serif Bold",
    "DejaVu Serif Bold Italic",
    "DejaVu Serif Italic",
    "DejaVuSerif",
    "Shift",
    "Shift Light",
    "Alegreya",
    "Genr102",  # Gentium
    "Geni102",  # Gentium
    "Gentium",
    "Gentium Plus",
    "Gentium Book Basic",
    "Sylfaen",
    "Bodoni LT Pro",
    "Bodoni MT",
    "Constantia",
    "Constantia Italic",
    "Adobe Caslon Pro",
    "Big Caslon",
    "LinLibertine",
    "Linux Libertine",
    "Linux Libertine O",
    "Liberation Serif",
    "FreeSerif",
    "Minion",
    "Minion Pro",
    "Minion Pro Cond",
    "Kozuka Mincho Pr6N",
    "Kozuka Mincho Pr6N L",
    "Kozuka Mincho Pr6N R",
    "Trajan Pro",
    "Janson Text LT Std",
    "Adobe Song Std",
    "AdobeSongStd-Light",
    "VeljovicStd",
    "ITC Fenice Std",
    "Stempel Garamond LT Std",
    "FreeFontSerif",
    "FreeSerifItalic",
    "Hoefler Text",
    "Iowan Old Style",
    "Lucida Bright",
    "Noto Serif",
    "PT Serif",
    "Source Serif Pro",
    "Crimson Text",
    "Literata",
    "Bitter",
    "Merriweather",
    "Lora",
    "STKai",
    "Traveling _Typewriter",  # not monospace despite the name
    "serif",
    "ui-serif",
)

SANS_SERIF_FACES: Tuple[str, ...] = (
    "Arial",
    "Arialb",
    "Arialbi",
    "Ariali",
    "ArialBold",
    "ArialBoldItalic",
    "ArialItalic",
    "Arial Unicode",
    "Arial Unicode MS",
    "ArialUnicodeMS",
    "ARIALUNI",
    "Arial Narrow",
    "Helvetica",
    "Helvetica Neue",
    "HelveticaNeueLTStd",
    "HelveticaNeueLTStd-BdCn",
    "HelveticaNeueLTStd-BdCnO",
    "HelveticaNeueLTStd-Cn",
    "HelveticaNeueLTStd-Md",
    "HelveticaNeueLTStd-MdCn",
    "HelveticaNeueLTStd-MdCnO",
    "Helvetica LT",
    "Verdana",
    "Trebuchet MS",
    "Tahoma",
    "Lucida Grande",
    "Lucida Sans",
    "Lucida Sans Unicode",
    "Calibri",
    "CALIBRIB",
    "CALIBRII",
    "Gill Sans",
    "Gill Sans MT",
    "Noto Sans",
    "Avantgarde",
    "DejaVu Sans",
    "DejaVuSans",
    "Bitstream Vera Sans",
    "TeX Gyre Adventor",
    "TeX Gyre Heros",
    "URW Gothic L",
    "Optima",
    "Gotham",
    "AtkinsonHyperlegible",
    "Atkinson Hyperlegible",
    "Roboto",
    "Inter",
    "Lato",
    "Source Sans Pro",
    "Fira Sans",
    "PT Sans",
    "Open Sans",
    "Segoe UI",
    "Geneva",
    "Candara",
    "Corbel",
    "Century Gothic",
    "Franklin",
    "Franklin Medium",
    "Franklin Gothic",
    "Futura",
    "Futura Bold",
    "Futura Std Book",
    "DIN Next LT Pro",
    "Trade Gothic Next LT Pro",
    "Myriad",
    "Myriad Pro",
    "MyriadPro-Regular",
    "MyriadPro-Bold",
    "MyriadPro-BoldIt",
    "MyriadPro-It",
    "Quicksand",
    "Alegreya Sans",
    "Fort-Book",
    "Free Sans",
    "Free Sans Bold",
    "FreeSans",
    "Liberation",
    "Liberation Sans",
    "LiberationNarrow",
    "RotisSansSerif",
    "MgOpen Modata",
    "Ubuntu",
    "Cantarell",
    "ＭＳ Ｐゴシック",
    "KaiTi",
    "SimHei",
    "AkzidenzStd",
    "ITCAvantGardeStd",
    "TradeGothicLTStd18",
    "TradeGothicLTStd20",
    "sans-serif",
    "sans serif",  # typo seen in a few books
    "ui-sans-serif",
    "ui-rounded",
    "system-ui",
    "-apple-system",
    "BlinkMacSystemFont",
)

MONOSPACE_FACES: Tuple[str, ...] = (
    "Andale Mono",
    "Courier",
    "Courier New",
    "Courier New Bold",
    "Courier New Bold Italic",
    "Courier New Italic",
    "FreeMono",
    "OCR A Std",
    "DejaVu Sans Mono",
    "DejaVu Sans Mono Bold",
    "DejaVu Sans Mono Bold Oblique",
    "DejaVu Sans Mono Oblique",
    "Bitstream Vera Sans Mono",
    "Liberation Mono",
    "Consolas",
    "Lucida Console",
    "Lucida Sans Typewriter",
    "Monaco",
    "Menlo",
    "SF Mono",
    "Source Code Pro",
    "Fira Mono",
    "Fira Code",
    "JetBrains Mono",
    "Cascadia Code",
    "Cascadia Mono",
    "UbuntuMono",
    "Ubuntu Mono",
    "Ubuntu Mono Bold",
    "Ubuntu Mono BoldItal",
    "Ubuntu Mono Ital",
    "Inconsolata",
    "Inconsolata Mono",
    "monospace",
    "ui-monospace",
)

CURSIVE_FACES: Tuple[str, ...] = (
    "Comic Sans MS",
    "Comic Sans",
    "Segoe Script",
    "Apple Chancery",
    "Bradley Hand",
    "Lucida Calligraphy",
    "Lucida Handwriting",
    "Brush Script MT",
    "Brush Script Std",
    "Snell Roundhand",
    "URW Chancery L",
    "Monotype Corsiva",
    "Zapf Chancery",
    "Great Vibes",
    "cursive",
)

FANTASY_FACES: Tuple[str, ...] = (
    "Impact",
    "Luminari",
    "Chalkduster",
    "Jazz LET",
    "Blippo",
    "Stencil Std",
    "Marker Felt",
    "Segoe Print",
    "Trattatello",
    "Papyrus",
    "fantasy",
)


def _build_face_table(
    groups: Sequence[Tuple[Sequence[str], GenericFontFamily]]
) -> Dict[str, GenericFontFamily]:
    table: Dict[str, GenericFontFamily] = {}
    for faces, generic in groups:
        for face in faces:
            table[face.lower()] = generic
    return table


LOWER_FACE_TO_GENERIC_FAMILY: Dict[str, GenericFontFamily] = _build_face_table(
    (
        (SERIF_FACES, GenericFontFamily.SERIF),
        (SANS_SERIF_FACES, GenericFontFamily.SANS_SERIF),
        (MONOSPACE_FACES, GenericFontFamily.MONOSPACE),
        (FANTASY_FACES, GenericFontFamily.FANTASY),
        (CURSIVE_FACES, GenericFontFamily.CURSIVE),
    )
)

_FACE_TRIM = " \t,'\""


def parse_font_family_list(value: str) -> List[str]:
    """Split a ``font-family`` value into its faces, stripped of quotes.

    Args:
        value: Raw declaration value, e.g. ``'"Charis SIL", Georgia, serif'``.

    Returns:
        Face names in declaration order; empty for a blank value.
    """
    value = value.strip()
    if not value:
        return []
    return [face.strip(_FACE_TRIM) for face in value.split(",")]


def classify_font_family(css_value: str) -> Optional[GenericFontFamily]:
    """Return the generic family of the first known face in ``css_value``.

    Matching is case-insensitive and exact; ``None`` when no face is known.
    """
    for face in parse_font_family_list(css_value.lower()):
        generic = LOWER_FACE_TO_GENERIC_FAMILY.get(face)
        if generic is not None:
            return generic
    return None
