"""Tests for tokenization and Jaccard similarity."""

from app.domain.services.text_similarity import jaccard_similarity, tokenize


def test_tokenize_lowercases_and_strips_punctuation():
    assert tokenize("Wireless, Noise-Cancelling HEADPHONES!") == {"wireless", "noise", "cancelling", "headphones"}


def test_tokenize_drops_short_tokens():
    assert tokenize("a an the usb 4k tv pro") == {"the", "usb", "pro"}


def test_tokenize_strips_non_ascii_letters():
    # é is outside [a-z0-9] and splits the word
    assert tokenize("café latte") == {"caf", "latte"}


def test_tokenize_empty_text():
    assert tokenize("") == set()
    assert tokenize(None) == set()


def test_jaccard_basic():
    assert jaccard_similarity({"a1x", "b2x"}, {"b2x", "c3x"}) == 1 / 3


def test_jaccard_is_symmetric_and_bounded():
    pairs = [
        ({"one", "two", "three"}, {"two", "three", "four", "five"}),
        ({"same"}, {"same"}),
        ({"abc"}, {"xyz"}),
    ]
    for a, b in pairs:
        assert jaccard_similarity(a, b) == jaccard_similarity(b, a)
        assert 0.0 <= jaccard_similarity(a, b) <= 1.0
    assert jaccard_similarity({"same"}, {"same"}) == 1.0


def test_jaccard_zero_when_either_set_empty():
    assert jaccard_similarity(set(), {"abc"}) == 0.0
    assert jaccard_similarity({"abc"}, set()) == 0.0
    assert jaccard_similarity(set(), set()) == 0.0
