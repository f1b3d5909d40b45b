"""
rule_masks.py - Separator markers for the cosmetic rule dialects

A cosmetic rule is "<domains><mask><body>", where the mask tells which
sub-language the body is written in:

    example.com##.banner                      element hiding
    example.com#@#.banner                     element hiding exception
    example.com#$#.banner { display: none }   CSS injection
    example.com#@$#.banner { color: red }     CSS injection exception
    example.com$$script[tag-content="ads"]    HTML filtering
    example.com$@$script[tag-content="ads"]   HTML filtering exception

Extended CSS variants add a "?" to the mask (#?#, #$?#, ...).
"""

from typing import Final, NamedTuple


# =============================================================================
# MASKS
# =============================================================================

MASK_ELEMENT_HIDING: Final[str] = "##"
MASK_ELEMENT_HIDING_EXCEPTION: Final[str] = "#@#"
MASK_CSS: Final[str] = "#$#"
MASK_CSS_EXCEPTION: Final[str] = "#@$#"
MASK_CSS_EXTENDED_CSS_RULE: Final[str] = "#?#"
MASK_CSS_EXCEPTION_EXTENDED_CSS_RULE: Final[str] = "#@?#"
MASK_CSS_INJECT_EXTENDED_CSS_RULE: Final[str] = "#$?#"
MASK_CSS_EXCEPTION_INJECT_EXTENDED_CSS_RULE: Final[str] = "#@$?#"
MASK_HTML_FILTERING: Final[str] = "$$"
MASK_HTML_FILTERING_EXCEPTION: Final[str] = "$@$"

#: All cosmetic masks. A mask listed earlier wins a tie at the same index,
#: so "#@$?#" comes before "#@?#".
COSMETIC_MASKS: Final[tuple[str, ...]] = (
    MASK_CSS_EXCEPTION_INJECT_EXTENDED_CSS_RULE,
    MASK_CSS_INJECT_EXTENDED_CSS_RULE,
    MASK_CSS_EXCEPTION_EXTENDED_CSS_RULE,
    MASK_CSS_EXCEPTION,
    MASK_CSS_EXTENDED_CSS_RULE,
    MASK_CSS,
    MASK_ELEMENT_HIDING_EXCEPTION,
    MASK_ELEMENT_HIDING,
    MASK_HTML_FILTERING_EXCEPTION,
    MASK_HTML_FILTERING,
)

#: Masks whose body is "selector { style }"
CSS_INJECTION_OUTPUT_MASKS: Final[frozenset[str]] = frozenset({
    MASK_CSS,
    MASK_CSS_EXCEPTION,
    MASK_CSS_INJECT_EXTENDED_CSS_RULE,
    MASK_CSS_EXCEPTION_INJECT_EXTENDED_CSS_RULE,
})


class CssInjectionMask(NamedTuple):
    """One row of the :style() conversion table."""
    detect: str
    emit: str


#: Legacy ":style()" conversion table. Row order is detection priority.
CSS_INJECTION_MASKS: Final[tuple[CssInjectionMask, ...]] = (
    CssInjectionMask(MASK_CSS_EXTENDED_CSS_RULE, MASK_CSS_INJECT_EXTENDED_CSS_RULE),
    CssInjectionMask(MASK_CSS_EXCEPTION_EXTENDED_CSS_RULE, MASK_CSS_EXCEPTION_INJECT_EXTENDED_CSS_RULE),
    CssInjectionMask(MASK_ELEMENT_HIDING, MASK_CSS),
    CssInjectionMask(MASK_ELEMENT_HIDING_EXCEPTION, MASK_CSS_EXCEPTION),
)


def find_cosmetic_mask(rule: str) -> tuple[int, str] | None:
    """
    Locate the cosmetic separator of a rule.

    Returns:
        (index, mask) of the left-most mask, or None for network rules

    Example:
        >>> find_cosmetic_mask("example.com#@$#h1 { color: red }")
        (11, '#@$#')
        >>> find_cosmetic_mask("||example.com^") is None
        True
    """
    best: tuple[int, str] | None = None
    for mask in COSMETIC_MASKS:
        index = rule.find(mask)
        if index == -1:
            continue
        # Same index: COSMETIC_MASKS is longest first, keep the earlier hit
        if best is None or index < best[0]:
            best = (index, mask)
    return best
