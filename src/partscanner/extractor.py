"""
Part-number extraction from decoded QR text.

Rules are evaluated in priority order against the whole text; the first rule
with a match wins and only its first occurrence is used. Labelled rules strip
their label (and separator) from the match. Text without any match falls back
to the trimmed input.
"""

import re
from dataclasses import dataclass
from typing import Optional, Sequence


@dataclass(frozen=True)
class TokenRule:
    name: str
    pattern: re.Pattern
    label: Optional[re.Pattern] = None

    def match(self, text: str) -> Optional[str]:
        found = self.pattern.search(text)
        if not found:
            return None
        token = found.group(0)
        if self.label is not None:
            token = self.label.sub("", token, count=1)
        return token


DEFAULT_RULES: Sequence[TokenRule] = (
    TokenRule("hyphenated", re.compile(r"[A-Z]{2,4}-\d{3,4}[A-Z]?")),
    TokenRule("compact", re.compile(r"[A-Z]{2,4}\d{3,4}[A-Z]?")),
    TokenRule(
        "pn-label",
        re.compile(r"PN[:\s]*[A-Z0-9-]{4,12}", re.IGNORECASE),
        label=re.compile(r"^PN[:\s]*", re.IGNORECASE),
    ),
    TokenRule(
        "part-label",
        re.compile(r"PART[:\s]*[A-Z0-9-]{4,12}", re.IGNORECASE),
        label=re.compile(r"^PART[:\s]*", re.IGNORECASE),
    ),
)


def extract_token(raw_text: str, rules: Sequence[TokenRule] = DEFAULT_RULES) -> str:
    for rule in rules:
        token = rule.match(raw_text)
        if token:
            return token
    return raw_text.strip()
