from dotenv import load_dotenv
from rich.traceback import install as tr_install
from rich_color_ext import install as rc_install

from unbook.logger import get_console, get_logger, get_progress

__version__ = "0.8.2"

load_dotenv()

_console = get_console()
log = get_logger(console=_console)

rc_install()
tr_install(console=_console)

from unbook.config import (  # noqa: E402
    ConversionSettings,
    ConverterReport,
    FontFamilyReplacementMode,
    FontReplacementOptions,
    SelectorHeuristics,
)
from unbook.convert import convert_document, convert_htmlz, is_unbook_output  # noqa: E402
from unbook.errors import ArchiveError, ConversionError, MimeTypeError, UnbookError  # noqa: E402

__all__ = [
    "ArchiveError",
    "ConversionError",
    "ConversionSettings",
    "ConverterReport",
    "FontFamilyReplacementMode",
    "FontReplacementOptions",
    "MimeTypeError",
    "SelectorHeuristics",
    "UnbookError",
    "convert_document",
    "convert_htmlz",
    "get_console",
    "get_logger",
    "get_progress",
    "is_unbook_output",
]
