"""Settings for a conversion.

The defaults reproduce the values unbook has always shipped with. Every
setting can be overridden from the environment (or a ``.env`` file loaded at
package import) through an ``UNBOOK_``-prefixed variable, e.g.
``UNBOOK_BASE_FONT_SIZE=16px`` or ``UNBOOK_REPLACE_MONOSPACE=never``.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__ = [
    "ConversionSettings",
    "ConverterReport",
    "FontFamilyReplacementMode",
    "FontReplacementOptions",
    "SelectorHeuristics",
    "TextFragmentsPolyfill",
]

ENV_PREFIX = "UNBOOK_"


class FontFamilyReplacementMode(str, Enum):
    """When to replace the font stacks governed by one setting."""

    NEVER = "never"
    IF_ONE = "if-one"
    ALWAYS = "always"


class TextFragmentsPolyfill(str, Enum):
    """Which Text Fragments polyfill to add for browsers lacking support."""

    NONE = "none"
    UNPKG = "unpkg"


class FontReplacementOptions(BaseModel):
    """Font sizing and font stack replacement preferences.

    Sizes are CSS values; they reach the fixed-up CSS through custom properties
    declared in the preamble.
    """

    model_config = ConfigDict(frozen=True)

    # 15px reads better than the 16px default on phones and low-DPI laptops
    base_font_size: str = "15px"
    # many books have no font-family at all and iOS Safari defaults to Times
    base_font_family: str = "sans-serif"
    monospace_font_family: str = "monospace"
    min_font_size: str = "13px"
    # 15px * 1.5 = 22.5px gives irregular line heights
    min_line_height: str = "1.53333333"
    replace_serif_and_sans_serif: FontFamilyReplacementMode = FontFamilyReplacementMode.IF_ONE
    replace_monospace: FontFamilyReplacementMode = FontFamilyReplacementMode.IF_ONE

    @field_validator(
        "base_font_size",
        "base_font_family",
        "monospace_font_family",
        "min_font_size",
        "min_line_height",
    )
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not (stripped := value.strip()):
            raise ValueError("CSS value may not be blank")
        return stripped


class SelectorHeuristics(BaseModel):
    """Selector allow-lists that gate the paragraph and background fixups.

    The defaults match class names observed in real converter output, e.g.
    ``.calibre8`` paragraphs or Project Gutenberg's ``.x-ebookmaker`` wrapper.
    """

    model_config = ConfigDict(frozen=True)

    paragraph_exact: Tuple[str, ...] = (".indent", ".noindent", ".indent-para")
    paragraph_substrings: Tuple[str, ...] = (".para",)
    paragraph_prefixes: Tuple[str, ...] = (".class_indent",)
    # only treated as paragraphs when the block also has a text-indent
    paragraph_indented_prefixes: Tuple[str, ...] = (".calibre",)
    background_exact: Tuple[str, ...] = (".calibre",)
    background_prefixes: Tuple[str, ...] = (".x-ebookmaker",)

    def is_probably_a_paragraph(self, selectors: str, declaration_block: str) -> bool:
        """Return True when ``selectors`` looks like a paragraph-style class."""
        if selectors in self.paragraph_exact:
            return True
        if any(part in selectors for part in self.paragraph_substrings):
            return True
        if selectors.startswith(self.paragraph_prefixes):
            return True
        return (
            selectors.startswith(self.paragraph_indented_prefixes)
            and "text-indent:" in declaration_block
        )

    def is_background_candidate(self, selectors: str) -> bool:
        """Return True for wrappers known to carry a near-white background."""
        return selectors in self.background_exact or selectors.startswith(
            self.background_prefixes
        )


class ConverterReport(BaseModel):
    """What the upstream converter run left behind for the provenance header."""

    original_name: str = ""
    original_size: Optional[int] = Field(default=None, ge=0)
    stdout: str = ""
    stderr: str = ""


class ConversionSettings(BaseModel):
    """Everything that shapes the output document."""

    model_config = ConfigDict(frozen=True)

    fonts: FontReplacementOptions = Field(default_factory=FontReplacementOptions)
    heuristics: SelectorHeuristics = Field(default_factory=SelectorHeuristics)

    max_width: str = "5in"
    inside_margin_when_wide: str = "32px"
    inside_margin_when_narrow: str = "16px"
    # "unset" disables either color
    outside_bgcolor: str = "#888"
    inside_bgcolor: str = "#e9e9e9"
    # 0 never replaces a wrapper background, 1 always does
    inside_bgcolor_similarity_threshold: float = Field(default=0.2, ge=0.0, le=1.0)

    append_head: str = ""
    text_fragments_polyfill: TextFragmentsPolyfill = TextFragmentsPolyfill.NONE

    csp_default_src: str = ""
    csp_font_src: str = ""
    csp_img_src: str = ""
    csp_style_src: str = ""
    csp_media_src: str = ""
    csp_script_src: str = ""
    csp_object_src: str = ""

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ConversionSettings":
        """Build settings from ``UNBOOK_*`` variables, falling back to defaults.

        Args:
            environ: Mapping to read instead of ``os.environ``.

        Returns:
            Validated settings.

        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        env = os.environ if environ is None else environ
        font_values = _collect(env, FontReplacementOptions.model_fields)
        heuristic_values: Dict[str, Any] = {
            name: _split_list(raw)
            for name, raw in _collect(env, SelectorHeuristics.model_fields).items()
        }
        values: Dict[str, Any] = _collect(
            env,
            {
                name: field
                for name, field in cls.model_fields.items()
                if name not in ("fonts", "heuristics")
            },
        )
        return cls(
            fonts=FontReplacementOptions(**font_values),
            heuristics=SelectorHeuristics(**heuristic_values),
            **values,
        )


def _collect(env: Mapping[str, str], fields: Mapping[str, Any]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for name in fields:
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is not None:
            values[name] = raw
    return values


def _split_list(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]
