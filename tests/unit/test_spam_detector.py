"""Tests for the spam heuristic."""
import pytest

from portfolio_api.services.spam_detector import (
    SpamDetectionOptions,
    detect_spam,
    is_spam,
)

CLEAN = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "subject": "Project inquiry",
    "message": "Hello, I would like to talk about a portfolio project.",
}


def test_clean_submission_scores_zero():
    result = detect_spam(CLEAN)
    assert result.is_spam is False
    assert result.score == 0
    assert result.reasons == ()


def test_detect_spam_is_pure():
    fields = dict(CLEAN, message="Buy now!!! click here for a prize")
    snapshot = dict(fields)
    first = detect_spam(fields)
    second = detect_spam(fields)
    assert first == second
    assert fields == snapshot


def test_honeypot_short_circuits():
    result = detect_spam(dict(CLEAN, honeypot="http://bot.example"))
    assert result.is_spam is True
    assert result.score == 100
    assert result.reasons == ("Honeypot field triggered",)


def test_empty_honeypot_is_ignored():
    assert detect_spam(dict(CLEAN, honeypot="")).score == 0


def test_custom_honeypot_field():
    options = SpamDetectionOptions(honeypot_field="website")
    assert detect_spam(dict(CLEAN, website="x"), options).score == 100
    assert detect_spam(dict(CLEAN, honeypot="x"), options).score == 0


def test_forbidden_words_accumulate():
    result = detect_spam(dict(CLEAN, message="Casino lottery jackpot for everyone today"))
    assert result.score == 50
    assert result.is_spam is True
    assert "casino" in result.reasons[0]


def test_forbidden_word_in_subject_counts():
    result = detect_spam(dict(CLEAN, subject="Viagra"))
    assert result.score == 25
    assert result.is_spam is False


def test_too_many_links():
    links = " ".join(f"https://example{i}.com" for i in range(6))
    result = detect_spam(dict(CLEAN, message=f"See {links}"))
    # 30 for the link count plus 15 per URL pattern match
    assert result.score == 30 + 6 * 15
    assert any(r.startswith("Too many links") for r in result.reasons)


def test_message_length_rules():
    assert detect_spam(dict(CLEAN, message="short")).score == 10
    assert detect_spam(dict(CLEAN, message="a b " * 1300)).score == 20


def test_excessive_capitalization():
    result = detect_spam(dict(CLEAN, message="PLEASE READ THIS MESSAGE RIGHT AWAY friend"))
    assert "Excessive capitalization" in result.reasons


def test_character_repetition():
    result = detect_spam(dict(CLEAN, message="Hello there!!!!!!! how are you doing"))
    assert "Excessive character repetition" in result.reasons


def test_name_email_mismatch():
    result = detect_spam(dict(CLEAN, email="xk42bot@example.com"))
    assert result.reasons == ("Name and email mismatch",)
    assert result.score == 10


@pytest.mark.parametrize("threshold, expected", [(60, False), (50, True)])
def test_threshold_is_configurable(threshold, expected):
    fields = dict(CLEAN, message="Cheap discount on everything, call me later")
    assert is_spam(fields, SpamDetectionOptions(threshold=threshold)) is expected


def test_result_as_dict():
    assert detect_spam(CLEAN).as_dict() == {"isSpam": False, "score": 0, "reasons": []}
