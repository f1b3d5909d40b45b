#!/usr/bin/env python3
"""
validator.py - Rule validation and domain blacklisting

Runs after deduplication, before sorting. Two passes:

    1. validate()          - reject rules that are malformed or use options
                             unknown to the blocker
    2. blacklist_domains() - drop (or narrow) rules that target a
                             blacklisted domain

Comment lines (!) always pass both stages untouched.

Blacklist matching is registered-domain aware: "ads.example.com" is covered
by a blacklisted "example.com", but a blacklisted "com" covers nothing.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Final, Iterable, NamedTuple

import tldextract

from filtercompiler.downloader import read_text, split_lines
from filtercompiler.rule_masks import CSS_INJECTION_OUTPUT_MASKS, find_cosmetic_mask

logger = logging.getLogger(__name__)

# Pre-configure tldextract to use the bundled suffix list (no network)
_tld_extract = tldextract.TLDExtract(suffix_list_urls=())


# =============================================================================
# OPTION DEFINITIONS
# =============================================================================

#: Network rule options accepted by the blocker, "~" negation and "=value"
#: stripped before lookup.
KNOWN_OPTIONS: Final[frozenset[str]] = frozenset({
    # -------------------------------------------------------------------------
    # Content types
    # -------------------------------------------------------------------------
    "document", "script", "stylesheet", "subdocument", "object", "image",
    "xmlhttprequest", "media", "font", "websocket", "webrtc", "ping", "other",
    "object-subrequest",

    # -------------------------------------------------------------------------
    # Party and domain restrictions
    # -------------------------------------------------------------------------
    "third-party", "3p", "1p", "domain", "denyallow", "match-case",
    "strict-first-party", "strict-third-party", "popup", "all",

    # -------------------------------------------------------------------------
    # Legacy aliases (negated forms are not rewritten by the converter)
    # -------------------------------------------------------------------------
    "first-party", "xhr", "css", "frame",

    # -------------------------------------------------------------------------
    # Exceptions
    # -------------------------------------------------------------------------
    "elemhide", "ehide", "generichide", "ghide", "specifichide", "shide",
    "genericblock", "jsinject", "urlblock", "content", "extension", "stealth",

    # -------------------------------------------------------------------------
    # Behaviour
    # -------------------------------------------------------------------------
    "important", "badfilter", "app", "network", "csp", "permissions",
    "replace", "redirect", "redirect-rule", "removeparam", "removeheader",
    "header", "cookie", "hls", "jsonprune", "method", "to", "empty", "mp4",
})

#: CSS fragments that may not appear in cosmetic rules
FORBIDDEN_CSS: Final[tuple[str, ...]] = ("url(", "expression(")


# =============================================================================
# REGEX PATTERNS
# =============================================================================

#: Option section: "$opt1,opt2" at the end of a network rule
OPTIONS_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$([~\w-]+(?:=[^,]*)?(?:,[~\w-]+(?:=[^,]*)?)*)$")

#: CSS injection body: "selector { declarations }"
CSS_INJECTION_BODY_PATTERN: Final[re.Pattern[str]] = re.compile(r"^.+\{.*\}\s*$")

#: Host of a "||host^" network rule
NETWORK_HOST_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^(?:@@)?\|\|"           # || or @@||
    r"(?:\*\.)?"              # Optional *. wildcard
    r"([a-zA-Z0-9._-]+)"      # Host
    r"[\^/$]"                 # Separator, path or options
)


class ValidationResult(NamedTuple):
    """Outcome of validating a single rule."""
    valid: bool
    reason: str | None


# =============================================================================
# VALIDATION
# =============================================================================

def extract_options(rule: str) -> list[str] | None:
    """
    Extract option names from a network rule.

    Returns:
        Lowercase option names without "~" or "=value", or None if the rule
        has no option section

    Example:
        >>> extract_options("||example.com^$script,~third-party,domain=a.com|b.com")
        ['script', 'third-party', 'domain']
    """
    match = OPTIONS_PATTERN.search(rule)
    if not match:
        return None

    names = []
    for part in match.group(1).split(","):
        name = part.split("=", 1)[0].strip().lower()
        if name.startswith("~"):
            name = name[1:]
        names.append(name)
    return names


def validate_cosmetic(rule: str, index: int, mask: str) -> ValidationResult:
    body = rule[index + len(mask):].strip()
    if not body:
        return ValidationResult(False, "empty selector")

    lowered = body.lower()
    if any(fragment in lowered for fragment in FORBIDDEN_CSS):
        return ValidationResult(False, "forbidden css")

    if mask in CSS_INJECTION_OUTPUT_MASKS:
        if not CSS_INJECTION_BODY_PATTERN.match(body):
            return ValidationResult(False, "invalid css injection")
    elif "{" in body or "}" in body:
        return ValidationResult(False, "style in element hiding rule")

    return ValidationResult(True, None)


def validate_network(rule: str) -> ValidationResult:
    pattern = rule[2:] if rule.startswith("@@") else rule

    if len(pattern) > 2 and pattern.startswith("/") and pattern.endswith("/"):
        try:
            re.compile(pattern[1:-1])
        except re.error:
            return ValidationResult(False, "invalid regex")
        return ValidationResult(True, None)

    options = extract_options(pattern)
    if options is not None:
        unknown = [name for name in options if name not in KNOWN_OPTIONS]
        if unknown:
            return ValidationResult(False, f"unknown option {unknown[0]}")
        pattern = pattern[:pattern.rindex("$")]
    elif "$" in pattern and not pattern.endswith("$"):
        return ValidationResult(False, "malformed options")

    if not pattern.strip("|^*") and options is None:
        return ValidationResult(False, "empty pattern")

    return ValidationResult(True, None)


def validate_rule(rule: str) -> ValidationResult:
    """
    Validate a single rule.

    Example:
        >>> validate_rule("||example.com^$script")
        ValidationResult(valid=True, reason=None)
        >>> validate_rule("||example.com^$bogus")
        ValidationResult(valid=False, reason='unknown option bogus')
    """
    if not rule.strip():
        return ValidationResult(False, "empty")

    if rule.startswith("!"):
        return ValidationResult(True, None)

    found = find_cosmetic_mask(rule)
    if found is not None:
        return validate_cosmetic(rule, *found)

    return validate_network(rule)


def validate(rules: Iterable[str]) -> list[str]:
    """Keep only valid rules, preserving order."""
    result = []
    for rule in rules:
        outcome = validate_rule(rule)
        if outcome.valid:
            result.append(rule)
        elif outcome.reason != "empty":
            logger.warning("Invalid rule removed (%s): %s", outcome.reason, rule)
    return result


# =============================================================================
# DOMAIN BLACKLIST
# =============================================================================

def normalize_domain(domain: str) -> str:
    """Normalize domain to lowercase, stripped."""
    return domain.lower().strip().rstrip(".")


@lru_cache(maxsize=65536)
def _extract_domain_parts(domain: str) -> tuple[str, str, str]:
    """Cached tldextract extraction. Returns (subdomain, domain, suffix)."""
    ext = _tld_extract(domain)
    return ext.subdomain, ext.domain, ext.suffix


@lru_cache(maxsize=65536)
def walk_parent_domains(domain: str) -> tuple[str, ...]:
    """
    Walk up the domain hierarchy to find all parent domains.

    Example: "a.b.example.com" -> ("b.example.com", "example.com")

    Returns tuple for hashability (caching).
    """
    subdomain, dom, suffix = _extract_domain_parts(domain)
    if not suffix or not dom or not subdomain:
        return ()

    registered = f"{dom}.{suffix}"
    parts = subdomain.split(".")
    return tuple(".".join(parts[i:] + [registered]) for i in range(1, len(parts) + 1))


def is_blacklisted(domain: str, blacklist: frozenset[str]) -> bool:
    """Check domain and its parents (up to the registered domain)."""
    domain = normalize_domain(domain)
    if domain in blacklist:
        return True
    return any(parent in blacklist for parent in walk_parent_domains(domain))


def parse_domain_blacklist(lines: Iterable[str]) -> frozenset[str]:
    """Parse a domain-per-line blacklist, skipping comments (! and #)."""
    domains = set()
    for line in lines:
        line = line.strip()
        if not line or line.startswith(("!", "#")):
            continue
        domains.add(normalize_domain(line))
    return frozenset(domains)


async def load_domain_blacklist(path: str | Path | None) -> frozenset[str]:
    """Load the domain blacklist, empty when missing or unreadable."""
    if path is None:
        return frozenset()

    content = await read_text(Path(path))
    if content is None:
        logger.warning("Cannot read domain blacklist: %s", path)
        return frozenset()

    blacklist = parse_domain_blacklist(split_lines(content))
    logger.info("Domain blacklist: %d domains", len(blacklist))
    return blacklist


def filter_cosmetic_domains(rule: str, index: int, blacklist: frozenset[str]) -> str | None:
    """
    Remove blacklisted domains from a cosmetic rule's domain list.

    Returns:
        The (possibly narrowed) rule, or None if no domain is left
    """
    if index == 0:
        return rule

    domains = rule[:index].split(",")
    kept = [d for d in domains if d.startswith("~") or not is_blacklisted(d, blacklist)]
    if len(kept) == len(domains):
        return rule
    if not kept:
        return None
    return ",".join(kept) + rule[index:]


def blacklist_domains(rules: Iterable[str], blacklist: frozenset[str]) -> list[str]:
    """
    Apply the domain blacklist.

    Network rules whose "||host^" is blacklisted are dropped. Cosmetic rules
    lose their blacklisted domains and are dropped once none remain.
    """
    rules = list(rules)
    if not blacklist:
        return rules

    result = []
    for rule in rules:
        if rule.startswith("!"):
            result.append(rule)
            continue

        found = find_cosmetic_mask(rule)
        if found is not None:
            narrowed = filter_cosmetic_domains(rule, found[0], blacklist)
            if narrowed is None:
                logger.info("Blacklisted rule removed: %s", rule)
            else:
                result.append(narrowed)
            continue

        match = NETWORK_HOST_PATTERN.match(rule + "^")
        if match and is_blacklisted(match.group(1), blacklist):
            logger.info("Blacklisted rule removed: %s", rule)
            continue

        result.append(rule)

    logger.info("Blacklist removed lines: %d", len(rules) - len(result))
    return result
