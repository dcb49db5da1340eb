import pytest

from partscanner.extractor import DEFAULT_RULES, TokenRule, extract_token


@pytest.mark.parametrize(
    "text",
    [
        "see part AB-123C for ref",
        "AB-123C",
        "https://example.com/parts?id=AB-123C&x=1",
        "line one\nAB-123C\nline three",
    ],
)
def test_hyphenated_token_is_extracted(text):
    assert extract_token(text) == "AB-123C"


def test_first_occurrence_of_winning_rule_is_used():
    assert extract_token("AB-123 then CD-456") == "AB-123"


def test_hyphenated_rule_beats_compact_rule():
    # the compact match appears first in the text but has lower priority
    assert extract_token("ZZ999 and AB-1234") == "AB-1234"


def test_compact_token():
    assert extract_token("item HL012A shelf") == "HL012A"


@pytest.mark.parametrize(
    "text,expected",
    [
        ("PN: XY-9911", "XY-9911"),
        ("PART:XY-9911", "XY-9911"),
        ("PN: 12345678", "12345678"),
        ("pn:98-7654", "98-7654"),
        ("Part 4455-66", "4455-66"),
    ],
)
def test_labelled_tokens_have_label_stripped(text, expected):
    assert extract_token(text) == expected


@pytest.mark.parametrize("text", ["  hello world  ", "12", "", "   lower-case ab-123  "])
def test_fallback_returns_trimmed_text(text):
    assert extract_token(text) == text.strip()


def test_extract_is_pure():
    text = "see part AB-123C for ref"
    assert extract_token(text) == extract_token(text)


def test_custom_rules_are_folded_in_order():
    import re

    rules = (TokenRule("digits", re.compile(r"\d{5}")),) + tuple(DEFAULT_RULES)
    assert extract_token("AB-123C 55555", rules) == "55555"
