"""
converter.py - Rewrite legacy rule syntax into canonical syntax

Two independent rewrites are applied to every rule:

CSS injection conversion (only rules containing ":style("):
    example.com##h1:style(background-color: blue !important)
    → example.com#$#h1 { background-color: blue !important }

    example.com#@#h1:style(color: red)
    → example.com#@$#h1 { color: red }

Option conversion (after "$" or ","):
    $first-party → $~third-party
    $xhr         → $xmlhttprequest
    $css         → $stylesheet
    $frame       → $subdocument

The converter never drops a rule: output has the same length and order
as the input.
"""

from __future__ import annotations

import logging
import re
from typing import Final, Iterable, NamedTuple

from filtercompiler.rule_masks import CSS_INJECTION_MASKS

logger = logging.getLogger(__name__)


# =============================================================================
# REGEX PATTERNS
# =============================================================================

STYLE_MARKER: Final[str] = ":style("

#: selector:style(declarations) → (selector, declarations)
CSS_RULE_REPLACE_PATTERN: Final[re.Pattern[str]] = re.compile(r"(.*):style\((.*)\)")

#: (pattern, replacement) pairs for legacy option names.
#: The delimiter is captured and written back.
OPTION_REPLACEMENTS: Final[tuple[tuple[re.Pattern[str], str], ...]] = (
    (re.compile(r"([$,])first-party(?![\w-])", re.IGNORECASE), r"\1~third-party"),
    (re.compile(r"([$,])xhr(?![\w-])", re.IGNORECASE), r"\1xmlhttprequest"),
    (re.compile(r"([$,])css(?![\w-])", re.IGNORECASE), r"\1stylesheet"),
    (re.compile(r"([$,])frame(?![\w-])", re.IGNORECASE), r"\1subdocument"),
)


class ConversionResult(NamedTuple):
    """
    Output of convert_rules().

    Attributes:
        rules: Converted rules, same length and order as the input
        excluded: Annotation lines for every CSS rule that was rewritten:
            a "! Rule ... converted to: ..." comment followed by the original rule
    """
    rules: list[str]
    excluded: list[str]


def convert_css_injection(rule: str) -> tuple[str, bool]:
    """
    Convert a legacy ":style()" rule into CSS injection syntax.

    Returns:
        (rule, converted) - the rule is returned unchanged when it has no
        known mask, no domain, or a body that does not split into a
        selector and a declaration block
    """
    for mask in CSS_INJECTION_MASKS:
        if mask.detect not in rule:
            continue

        domain, selector_and_style = rule.split(mask.detect, 1)
        if not domain:
            return rule, False

        match = CSS_RULE_REPLACE_PATTERN.match(selector_and_style)
        if match is None or len(match.groups()) != 2:
            logger.warning("Cannot convert %s", rule)
            return rule, False

        selector, style = match.groups()
        return f"{domain}{mask.emit}{selector} {{ {style} }}", True

    return rule, False


def convert_options(rule: str) -> str:
    """
    Replace legacy option names with their canonical form.

    Example:
        >>> convert_options("||example.org^$first-party,xhr")
        '||example.org^$~third-party,xmlhttprequest'
    """
    result = rule
    for pattern, replacement in OPTION_REPLACEMENTS:
        result = pattern.sub(replacement, result, count=1)
    return result


def convert_rules(rules: Iterable[str]) -> ConversionResult:
    """
    Convert every rule, collecting annotations for CSS rewrites.

    Args:
        rules: Raw rule lines

    Returns:
        ConversionResult with the converted rules and the annotations
    """
    converted: list[str] = []
    excluded: list[str] = []

    for rule in rules:
        if STYLE_MARKER in rule:
            result, changed = convert_css_injection(rule)
            if changed:
                message = f'Rule "{rule}" converted to: {result}'
                logger.info(message)
                excluded.append(f"! {message}")
                excluded.append(rule)
                rule = result

        replaced = convert_options(rule)
        if replaced != rule:
            logger.info('Rule "%s" converted to: %s', rule, replaced)
            rule = replaced

        converted.append(rule)

    return ConversionResult(converted, excluded)


def convert(rules: Iterable[str]) -> list[str]:
    """Convert rules, discarding the annotations."""
    return convert_rules(rules).rules
