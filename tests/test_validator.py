import asyncio

from filtercompiler.validator import (
    blacklist_domains,
    extract_options,
    is_blacklisted,
    load_domain_blacklist,
    validate,
    validate_rule,
)


def test_extract_options():
    assert extract_options("||example.com^$script,~third-party,domain=a.com|b.com") == [
        "script", "third-party", "domain",
    ]
    assert extract_options("||example.com^") is None


def test_valid_rules_pass():
    rules = [
        "! comment",
        "||example.com^",
        "@@||example.com^$document",
        "||example.com^$~third-party,xmlhttprequest",
        "/banner[0-9]+/",
        "example.com##.banner",
        "example.com#$#h1 { color: red }",
        "example.com#?#div:has(> a)",
    ]
    assert validate(rules) == rules


def test_invalid_rules_are_removed():
    assert validate([
        "",
        "||example.com^$bogus",
        "/ads[/",
        "example.com#$#h1",
        "example.com##",
        "example.com#$#h1 { background: url(http://x) }",
        "||ok.com^",
    ]) == ["||ok.com^"]


def test_validate_rule_reports_reason():
    outcome = validate_rule("||example.com^$bogus")
    assert not outcome.valid
    assert outcome.reason == "unknown option bogus"


def test_is_blacklisted_walks_parents_to_registered_domain():
    blacklist = frozenset({"example.com"})
    assert is_blacklisted("example.com", blacklist)
    assert is_blacklisted("a.b.example.com", blacklist)
    assert not is_blacklisted("example.org", blacklist)
    assert not is_blacklisted("example.com", frozenset({"com"}))


def test_blacklist_drops_network_rules():
    rules = ["||ads.example.com^", "@@||example.com^$document", "||example.org^", "! example.com"]
    assert blacklist_domains(rules, frozenset({"example.com"})) == ["||example.org^", "! example.com"]


def test_blacklist_narrows_cosmetic_rules():
    rules = [
        "example.com,example.org##.ad",
        "example.com##.ad",
        "~example.com##.ad",
        "##.generic",
    ]
    assert blacklist_domains(rules, frozenset({"example.com"})) == [
        "example.org##.ad",
        "~example.com##.ad",
        "##.generic",
    ]


def test_load_domain_blacklist(tmp_path):
    path = tmp_path / "blacklist.txt"
    path.write_text("# comment\nExample.COM\n\nexample.org.\n", encoding="utf-8")

    assert asyncio.run(load_domain_blacklist(path)) == frozenset({"example.com", "example.org"})


def test_missing_domain_blacklist_is_empty(tmp_path):
    assert asyncio.run(load_domain_blacklist(tmp_path / "missing.txt")) == frozenset()
    assert asyncio.run(load_domain_blacklist(None)) == frozenset()


def test_html_filtering_rules_are_cosmetic():
    rules = ['example.com$$script[tag-content="ads"]', 'example.com$@$script[tag-content="ads"]']
    assert validate(rules) == rules
    assert blacklist_domains(rules, frozenset({"example.com"})) == []


def test_negated_legacy_option_aliases_are_known():
    rules = ["||a.com^$~first-party", "||b.com^$~xhr,~css", "||c.com^$~frame"]
    assert validate(rules) == rules
