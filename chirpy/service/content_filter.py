from __future__ import annotations

TABOO_WORDS = ("kerfuffle", "sharbert", "fornax")
MASK = "****"


def _variants(word: str) -> tuple[str, str, str]:
    return word, word.upper(), word[:1].upper() + word[1:]


def censor(text: str) -> str:
    """Mask taboo words in ``text``.

    Matching is raw substring replacement of the lowercase, UPPERCASE and
    Capitalized forms only, so a taboo word inside a longer word is masked and
    other mixed-case spellings are left alone.
    """
    censored = text
    for taboo in TABOO_WORDS:
        for variant in _variants(taboo):
            censored = censored.replace(variant, MASK)
    return censored
