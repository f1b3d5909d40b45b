"""
sorter.py - Final ordering of compiled rules

Comment lines stay where they are and split the rules into sections.
Inside a section network rules come first, then cosmetic rules, each
group ordered case-insensitively (ties broken by the exact text so the
result is deterministic).

    ! Section A            ! Section A
    example.com##.b        ||a.com^
    ||b.com^          →    ||b.com^
    ||a.com^               example.com##.b
    ! Section B            ! Section B
    ...                    ...
"""

from __future__ import annotations

from typing import Iterable

from filtercompiler.rule_masks import find_cosmetic_mask


def rule_sort_key(rule: str) -> tuple[bool, str, str]:
    return find_cosmetic_mask(rule) is not None, rule.lower(), rule


def sort_rules(rules: Iterable[str]) -> list[str]:
    """Sort rules within comment-delimited sections."""
    result: list[str] = []
    section: list[str] = []

    for rule in rules:
        if rule.startswith("!"):
            result.extend(sorted(section, key=rule_sort_key))
            section = []
            result.append(rule)
        else:
            section.append(rule)

    result.extend(sorted(section, key=rule_sort_key))
    return result
