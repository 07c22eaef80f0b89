"""Unit tests for the taboo-word censor."""

import pytest

from chirpy.service.content_filter import MASK, TABOO_WORDS, censor


def test_masks_lowercase_word():
    assert censor("This is a kerfuffle opinion") == "This is a **** opinion"


@pytest.mark.parametrize("word", ["SHARBERT", "Sharbert", "FORNAX", "Fornax", "KERFUFFLE"])
def test_masks_upper_and_capitalized_forms(word):
    assert censor(f"what a {word}!") == f"what a {MASK}!"


def test_other_mixed_case_is_left_alone():
    assert censor("a KerFuffle here") == "a KerFuffle here"


def test_substring_inside_longer_word_is_masked():
    assert censor("kerfuffles everywhere") == "****s everywhere"


def test_every_taboo_word_is_masked():
    text = " ".join(TABOO_WORDS)
    assert censor(text) == " ".join([MASK] * len(TABOO_WORDS))


def test_clean_text_unchanged():
    text = "I had something interesting for breakfast"
    assert censor(text) == text
