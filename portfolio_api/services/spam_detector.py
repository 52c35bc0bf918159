"""
Heuristic spam scoring for contact submissions.

`detect_spam` is a pure function: it accumulates a score from independent rule
checks and flags the submission once the score reaches the threshold. A filled
honeypot field short-circuits with a score of 100.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Pattern, Tuple


DEFAULT_FORBIDDEN_WORDS: Tuple[str, ...] = (
    "viagra", "cialis", "casino", "lottery", "prize", "winner", "free money",
    "buy now", "click here", "earn money", "make money", "get rich", "weight loss",
    "diet pill", "cheap", "discount", "free offer", "limited time", "act now",
    "satisfaction", "guarantee", "no risk", "no obligation", "no purchase",
    "congratulations", "won", "winning", "selected", "pharmacy", "prescription",
)

DEFAULT_SUSPICIOUS_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b", re.IGNORECASE),  # email
    re.compile(r"https?://\S+", re.IGNORECASE),  # url
    re.compile(r"\+\d{10,}"),  # international phone
    re.compile(r"\$\d+"),  # dollar amount
    re.compile(r"\d{3}[\s-]?\d{3}[\s-]?\d{4}"),  # US phone
)

_LINK_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_REPEATED_CHAR_RE = re.compile(r"(.)\1{5,}")


@dataclass(frozen=True)
class SpamDetectionOptions:
    min_message_length: int = 10
    max_message_length: int = 5000
    max_links: int = 5
    threshold: int = 50
    forbidden_words: Tuple[str, ...] = DEFAULT_FORBIDDEN_WORDS
    suspicious_patterns: Tuple[Pattern[str], ...] = DEFAULT_SUSPICIOUS_PATTERNS
    honeypot_field: Optional[str] = "honeypot"
    honeypot_value: str = ""


@dataclass(frozen=True)
class SpamResult:
    is_spam: bool
    score: int
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {"isSpam": self.is_spam, "score": self.score, "reasons": list(self.reasons)}


DEFAULT_OPTIONS = SpamDetectionOptions()


def _text(fields: Mapping[str, Any], key: str) -> str:
    value = fields.get(key)
    return value if isinstance(value, str) else ""


def detect_spam(
    fields: Mapping[str, Any], options: SpamDetectionOptions = DEFAULT_OPTIONS
) -> SpamResult:
    """Score a submission's fields against the spam rules."""
    name = _text(fields, "name")
    email = _text(fields, "email")
    subject = _text(fields, "subject")
    message = _text(fields, "message")

    if options.honeypot_field:
        honeypot = fields.get(options.honeypot_field)
        if honeypot is None:
            honeypot = ""
        if honeypot != options.honeypot_value:
            return SpamResult(True, 100, ("Honeypot field triggered",))

    score = 0
    reasons: List[str] = []

    if len(message) < options.min_message_length:
        score += 10
        reasons.append("Message too short")
    if len(message) > options.max_message_length:
        score += 20
        reasons.append("Message too long")

    links = _LINK_RE.findall(message)
    if len(links) > options.max_links:
        score += 30
        reasons.append(f"Too many links ({len(links)})")

    lower_message = message.lower()
    lower_subject = subject.lower()
    lower_name = name.lower()
    found_words = [
        word
        for word in options.forbidden_words
        if word.lower() in lower_message
        or word.lower() in lower_subject
        or word.lower() in lower_name
    ]
    if found_words:
        score += 25 * len(found_words)
        reasons.append(f"Contains forbidden words: {', '.join(found_words)}")

    pattern_hits = sum(len(p.findall(message)) for p in options.suspicious_patterns)
    if pattern_hits:
        score += 15 * pattern_hits
        reasons.append(f"Contains suspicious patterns ({pattern_hits})")

    upper = sum(1 for c in message if "A" <= c <= "Z")
    letters = sum(1 for c in message if "A" <= c <= "Z" or "a" <= c <= "z")
    if letters > 20 and upper / letters > 0.5:
        score += 20
        reasons.append("Excessive capitalization")

    if _REPEATED_CHAR_RE.search(message):
        score += 15
        reasons.append("Excessive character repetition")

    email_local = email.split("@")[0].lower()
    compact_name = re.sub(r"\s+", "", lower_name)
    if (
        len(email_local) > 3
        and email_local not in lower_name
        and compact_name not in email_local
    ):
        score += 10
        reasons.append("Name and email mismatch")

    return SpamResult(score >= options.threshold, score, tuple(reasons))


def is_spam(
    fields: Mapping[str, Any], options: SpamDetectionOptions = DEFAULT_OPTIONS
) -> bool:
    return detect_spam(fields, options).is_spam
