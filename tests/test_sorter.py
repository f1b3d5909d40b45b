from filtercompiler.sorter import sort_rules


def test_network_rules_before_cosmetic_rules():
    assert sort_rules(["example.com##.b", "||B.com^", "||a.com^", "a.com##.a"]) == [
        "||a.com^", "||B.com^", "a.com##.a", "example.com##.b",
    ]


def test_comments_split_sections():
    assert sort_rules(["||z.com^", "! Section", "||c.com^", "||b.com^"]) == [
        "||z.com^", "! Section", "||b.com^", "||c.com^",
    ]


def test_sort_is_deterministic_for_case_variants():
    assert sort_rules(["||a.com^", "||A.com^"]) == ["||A.com^", "||a.com^"]
