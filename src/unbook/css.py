"""Typographic fixups for the CSS a converter emits.

The CSS is only lightly parsed: each ruleset is a selector list and one
non-nested declaration block, which is all the converter output contains.
Every edit is a whole-line regex substitution over a declaration block that
keeps the line's indentation and appends an ``/* unbook */`` marker, so the
result can be audited against the original.

Fixing is done in two phases. :func:`get_generic_font_family_map` looks at the
whole document first because font stack replacement depends on how many
distinct stacks the document uses; :func:`fix_css` then rewrites each ruleset.
"""

from __future__ import annotations

import re
import xml.dom
from textwrap import dedent
from typing import Dict, FrozenSet, Iterable, List, Optional, Set, Tuple

import cssutils
from pydantic import BaseModel, ConfigDict

from unbook.config import FontFamilyReplacementMode, FontReplacementOptions, SelectorHeuristics
from unbook.font import GenericFontFamily, classify_font_family
from unbook.logger import get_logger

log = get_logger()

cssutils.log.setLevel("CRITICAL")

__all__ = [
    "FontReplacementPlan",
    "GenericFamilyMap",
    "Ruleset",
    "fix_css",
    "fix_css_ruleset",
    "get_all_font_stacks",
    "get_css_rulesets",
    "get_generic_font_family_map",
    "parse_css_color",
    "plan_font_replacement",
    "top_css",
]

FONT_FACE = "@font-face"
MARKER = "/* unbook */"

GenericFamilyMap = Dict[Optional[GenericFontFamily], Set[str]]
RGB = Tuple[float, float, float]


class Ruleset(BaseModel):
    """A selector list and its declaration block, without the braces."""

    model_config = ConfigDict(frozen=True)

    selectors: str
    declaration_block: str

    @property
    def is_font_face(self) -> bool:
        return self.selectors == FONT_FACE

    def to_css(self) -> str:
        return f"{self.selectors} {{\n    {self.declaration_block}\n}}\n"


RULESET_RE = re.compile(r"^(?P<selectors>[^{]+)\s*\{(?P<declaration_block>[^}]*)\}", re.M)
FONT_FAMILY_RE = re.compile(r"^(?:\s*)font-family:\s*(?P<stack>[^;]+?);?$", re.M)
LINE_HEIGHT_RE = re.compile(r"^(?P<indent>\s*)line-height:\s*(?P<height>[^;]+?);?$", re.M)
FONT_SIZE_RE = re.compile(r"^(?P<indent>\s*)font-size:\s*(?P<size>[^;]+?);?$", re.M)
TEXT_ALIGN_JUSTIFY_RE = re.compile(r"^(?P<indent>\s*)text-align:\s*justify;?$", re.M)
PARA_MARGIN_RE = re.compile(
    r"^(?P<indent>\s*)(?P<which>margin-(?:top|bottom)):\s*"
    r"(?P<margin>0\.[123]\d?em|[1234](?:\.\d+)?px|[1234](?:\.\d+)?pt);?$",
    re.M,
)
BACKGROUND_RE = re.compile(
    r"^(?P<indent>\s*)(?P<which>background(?:-color)?):\s*(?P<color>[^;]+?);?$", re.M
)
VERTICAL_ALIGN_SUPER_RE = re.compile(r"^(?P<indent>\s*)vertical-align:\s*super;?$", re.M)


def get_css_rulesets(css: str) -> List[Ruleset]:
    """Split ``css`` into rulesets in source order.

    A ``}`` always closes the nearest ``{``; nested blocks are not supported.
    Text that does not look like ``selectors { declarations }`` is skipped.
    """
    return [
        Ruleset(
            selectors=match["selectors"].strip(),
            declaration_block=match["declaration_block"].strip(),
        )
        for match in RULESET_RE.finditer(css)
    ]


def get_all_font_stacks(css: str) -> List[str]:
    """Return the value of every ``font-family`` line outside ``@font-face``.

    ``@font-face`` declares a font rather than using one, so it is skipped.
    Duplicates are kept; a block may hold several ``font-family`` lines.
    """
    stacks: List[str] = []
    for ruleset in get_css_rulesets(css):
        if ruleset.is_font_face:
            continue
        stacks.extend(m["stack"] for m in FONT_FAMILY_RE.finditer(ruleset.declaration_block))
    return stacks


def get_generic_font_family_map(css: str) -> GenericFamilyMap:
    """Bucket every distinct font stack in ``css`` by its generic family."""
    family_map: GenericFamilyMap = {}
    for stack in get_all_font_stacks(css):
        family_map.setdefault(classify_font_family(stack), set()).add(stack)
    log.debug(
        "Font stacks by family: "
        + ", ".join(
            f"{family.value if family else 'unknown'}={len(stacks)}"
            for family, stacks in family_map.items()
        )
    )
    return family_map


class FontReplacementPlan(BaseModel):
    """The document-wide decision of which font stacks get replaced."""

    model_config = ConfigDict(frozen=True)

    base: FrozenSet[str] = frozenset()
    monospace: FrozenSet[str] = frozenset()


def _select_stacks(mode: FontFamilyReplacementMode, stacks: Set[str]) -> FrozenSet[str]:
    if mode is FontFamilyReplacementMode.IF_ONE:
        return frozenset(stacks) if len(stacks) == 1 else frozenset()
    if mode is FontFamilyReplacementMode.ALWAYS:
        return frozenset(stacks)
    return frozenset()


def plan_font_replacement(
    options: FontReplacementOptions, family_map: GenericFamilyMap
) -> FontReplacementPlan:
    """Decide once per document which stacks to replace.

    Serif and sans-serif stacks are treated as one set. Authors sometimes want
    a particular typeface, but a reader's familiar font lets them read faster.
    """
    both = family_map.get(GenericFontFamily.SERIF, set()) | family_map.get(
        GenericFontFamily.SANS_SERIF, set()
    )
    monospace = family_map.get(GenericFontFamily.MONOSPACE, set())
    return FontReplacementPlan(
        base=_select_stacks(options.replace_serif_and_sans_serif, both),
        monospace=_select_stacks(options.replace_monospace, monospace),
    )


def parse_css_color(value: str) -> Optional[RGB]:
    """Parse a CSS color into red, green and blue between 0 and 1.

    The value must be exactly one color; a color followed by anything else,
    such as the image of a ``background`` shorthand, is rejected.

    Returns:
        The channels, or ``None`` when ``value`` is not a single color.
    """
    try:
        values = cssutils.css.PropertyValue(value.strip())
    except (xml.dom.DOMException, ValueError) as exc:
        log.trace(f"Not a color: {value!r} ({exc})")
        return None
    if not values.wellformed or len(values) != 1:
        return None
    color = values[0]
    if not isinstance(color, cssutils.css.ColorValue) or not color.wellformed:
        return None
    return (color.red / 255, color.green / 255, color.blue / 255)


def _replace_font_stacks(css: str, stacks: Iterable[str], replacement: str) -> str:
    alternatives = "|".join(re.escape(stack) for stack in sorted(stacks))
    font_family = re.compile(
        rf"^(?P<indent>\s*)font-family:\s*(?P<stack>{alternatives})\s*;?$", re.M
    )
    return font_family.sub(
        rf"\g<indent>font-family: {replacement}; /* was font-family: \g<stack> */ {MARKER}",
        css,
    )


def fix_css_ruleset(
    ruleset: Ruleset,
    options: FontReplacementOptions,
    family_map: GenericFamilyMap,
    inside_bgcolor: Optional[RGB],
    inside_bgcolor_similarity_threshold: float,
    heuristics: Optional[SelectorHeuristics] = None,
    plan: Optional[FontReplacementPlan] = None,
) -> Ruleset:
    """Fix one declaration block and return a new ruleset.

    Args:
        ruleset: Ruleset to fix; ``@font-face`` is returned unchanged.
        options: Font preferences; replacement modes are read from here.
        family_map: Document-wide font stacks by generic family.
        inside_bgcolor: Parsed target background, or ``None`` to keep backgrounds.
        inside_bgcolor_similarity_threshold: Largest per-channel distance that
            still counts as the same background.
        heuristics: Selector allow-lists for the paragraph and background fixups.
        plan: Precomputed font replacement decision for the document.

    Returns:
        Ruleset with the same selectors and a rewritten declaration block.
    """
    if ruleset.is_font_face:
        return ruleset
    heuristics = heuristics or SelectorHeuristics()
    if plan is None:
        plan = plan_font_replacement(options, family_map)
    selectors = ruleset.selectors
    css = ruleset.declaration_block

    # A minimum line height reduces the chance of regressing to an already-read line.
    css = LINE_HEIGHT_RE.sub(
        rf"\g<indent>line-height: max(\g<height>, var(--min-line-height)); {MARKER}", css
    )

    # Text that is too small causes eye strain or becomes unreadable.
    css = FONT_SIZE_RE.sub(rf"\g<indent>font-size: max(\g<size>, var(--min-font-size)); {MARKER}", css)

    # Justified text has uneven word spacing, which is hopeless on narrow screens.
    # See Eric Gill, _An Essay on Typography_, ch. 6 'The Procrustean Bed'.
    css = TEXT_ALIGN_JUSTIFY_RE.sub(rf"\g<indent>/* was text-align: justify; */ {MARKER}", css)

    # Small extra margins between paragraphs are typographically wrong, and
    # values this close to 0 are unlikely to carry meaning.
    if heuristics.is_probably_a_paragraph(selectors, css):
        css = PARA_MARGIN_RE.sub(
            rf"\g<indent>\g<which>: 0; /* was \g<which>: \g<margin>; */ {MARKER}", css
        )

    # Near-white wrapper backgrounds would fight our own background color.
    if inside_bgcolor is not None and heuristics.is_background_candidate(selectors):
        css = _harmonize_backgrounds(css, inside_bgcolor, inside_bgcolor_similarity_threshold)

    # Fake superscripts get the same fix as <sup> in the preamble.
    css = VERTICAL_ALIGN_SUPER_RE.sub(
        rf"\g<indent>vertical-align: baseline; /* was vertical-align: super; */ {MARKER}\n"
        rf"    position: relative; {MARKER}\n"
        rf"    top: -0.4em; {MARKER}",
        css,
    )

    if plan.base:
        css = _replace_font_stacks(css, plan.base, "var(--base-font-family)")
    if plan.monospace:
        css = _replace_font_stacks(css, plan.monospace, "var(--monospace-font-family)")

    return Ruleset(selectors=selectors, declaration_block=css)


def _harmonize_backgrounds(css: str, target: RGB, threshold: float) -> str:
    def replace(match: re.Match[str]) -> str:
        parsed = parse_css_color(match["color"])
        if parsed is None:
            return match[0]
        if any(abs(ours - theirs) > threshold for ours, theirs in zip(target, parsed)):
            return match[0]
        return (
            f"{match['indent']}{match['which']}: inherit; "
            f"/* was {match['which']}: {match['color']}; */ {MARKER}"
        )

    return BACKGROUND_RE.sub(replace, css)


def fix_css(
    css: str,
    options: FontReplacementOptions,
    family_map: GenericFamilyMap,
    inside_bgcolor: str,
    inside_bgcolor_similarity_threshold: float,
    heuristics: Optional[SelectorHeuristics] = None,
) -> str:
    """Fix every ruleset in ``css`` and serialize them in source order.

    ``@font-face`` rulesets are kept as they are so the intended fonts remain
    visible, even though the fonts themselves are not shipped.
    """
    target = parse_css_color(inside_bgcolor)
    plan = plan_font_replacement(options, family_map)
    log.debug(
        f"Replacing {len(plan.base)} base and {len(plan.monospace)} monospace font stacks"
    )
    out: List[str] = []
    for ruleset in get_css_rulesets(css):
        fixed = fix_css_ruleset(
            ruleset,
            options,
            family_map,
            target,
            inside_bgcolor_similarity_threshold,
            heuristics=heuristics,
            plan=plan,
        )
        out.append(fixed.to_css())
    return "".join(out)


def top_css(
    options: FontReplacementOptions,
    max_width: str,
    inside_margin_when_wide: str,
    inside_margin_when_narrow: str,
    outside_bgcolor: str,
    inside_bgcolor: str,
) -> str:
    """Return the preamble placed before the fixed converter CSS.

    It declares the custom properties the fixups refer to and resets the page
    layout. Nothing in it depends on the source document.
    """
    return dedent(
        f"""\
        /* unbook */

        :root {{
            --base-font-size: {options.base_font_size};
            --base-font-family: {options.base_font_family};
            --monospace-font-family: {options.monospace_font_family};
            --min-font-size: {options.min_font_size};
            --min-line-height: {options.min_line_height};
            --inside-margin-when-wide: {inside_margin_when_wide};
            --inside-margin-when-narrow: {inside_margin_when_narrow};
            --outside-bgcolor: {outside_bgcolor};
            --inside-bgcolor: {inside_bgcolor};
        }}

        html {{
            background-color: var(--outside-bgcolor);
        }}

        body {{
            background-color: var(--inside-bgcolor);
            max-width: {max_width};
            margin: 0 auto;
            padding: var(--inside-margin-when-narrow);

            line-height: var(--min-line-height);

            font-size: var(--base-font-size);
            /* keep iOS Safari from enlarging text in landscape */
            -webkit-text-size-adjust: none;
            text-size-adjust: none;

            font-family: var(--base-font-family);

            /* long words such as URLs must not widen the page */
            word-break: break-word;
        }}

        @media only screen and (min-width: calc({inside_margin_when_narrow} + {max_width} + {inside_margin_when_narrow})) {{
            body {{
                padding: var(--inside-margin-when-wide);
            }}
        }}

        sup, sub {{
            /* vertical-align: super heightens the containing line; books often
             * set their own vertical-align on <sup>, hence !important */
            vertical-align: baseline !important;
            position: relative;
            top: -0.4em;
        }}
        sub {{
            top: 0.4em;
        }}

        img {{
            /* images must not widen the page */
            max-width: 100%;

            /* an explicit height would stretch a max-width constrained image */
            height: auto !important;
            width: auto !important;

            /* inline formula images sit better on the middle of the line */
            vertical-align: middle;
        }}

        img.unbook-cover {{
            display: block;
            margin: 1em auto;
        }}

        /* calibre */
        """
    )
