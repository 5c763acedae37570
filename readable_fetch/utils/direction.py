"""Writing-direction detection from a language hint and sample text."""

from __future__ import annotations

import re
from typing import Literal

TextDirection = Literal["rtl", "ltr"]

RTL_LANGUAGES = frozenset({"ar", "arc", "ckb", "dv", "fa", "he", "iw", "ku", "ps", "sd", "ug", "ur", "yi"})

# Hebrew, Arabic, Syriac, Thaana, NKo and the Arabic presentation forms
_RTL_CHAR_RE = re.compile(r"[\u0590-\u08ff\ufb1d-\ufdff\ufe70-\ufefe]")
_SAMPLE_CHARS = 2000
_RTL_RATIO = 0.3


def get_text_direction(lang: str | None, text: str | None) -> TextDirection:
    """Return "rtl" or "ltr".

    A language hint wins when its primary subtag is a right-to-left
    language. Otherwise the share of RTL script characters among the letters
    of the first 2000 characters of text decides.
    """
    if lang:
        primary = re.split(r"[-_]", lang.strip().lower(), maxsplit=1)[0]
        if primary in RTL_LANGUAGES:
            return "rtl"
    if not text:
        return "ltr"
    sample = text[:_SAMPLE_CHARS]
    letters = sum(1 for ch in sample if ch.isalpha())
    if letters == 0:
        return "ltr"
    rtl = len(_RTL_CHAR_RE.findall(sample))
    return "rtl" if rtl / letters > _RTL_RATIO else "ltr"
