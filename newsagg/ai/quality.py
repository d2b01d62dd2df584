"""
AI Response Post-processing
===========================

Interpretation of raw model output: category extraction, summary cleanup
and the quality gate a summary must pass before it is stored.
"""

import re
from typing import Optional, Sequence

from .fallback import AI_CATEGORIES, DEFAULT_CATEGORY, basic_summary

MIN_SUMMARY_LENGTH = 50
FORBIDDEN_MARKUP = ("```", "###", "---")

_LABEL_PREFIX = re.compile(
    r"^(?:Сводка|Summary|Краткое содержание|Краткая сводка|В статье|Статья)\s*:\s*",
    re.IGNORECASE,
)
_LEAD_PHRASE = re.compile(
    r"^(?:В статье говорится|Статья рассказывает|В материале)\s+(?:о том,?\s+)?что\s+",
    re.IGNORECASE,
)
_QUOTES = re.compile(r'^["«“]+|["»”]+$')
_NON_CYRILLIC = re.compile(r"[^а-яА-ЯёЁ]")


def extract_category(
    response: Optional[str],
    categories: Sequence[str] = AI_CATEGORIES,
    default: str = DEFAULT_CATEGORY,
) -> str:
    """Map a free-form model answer onto one of ``categories``."""
    if not response or not response.strip():
        return default

    lowered = response.lower()
    for category in categories:
        if category.lower() in lowered:
            return category

    first_word = _NON_CYRILLIC.sub("", response.strip().split()[0]).lower()
    if len(first_word) >= 3:
        for category in categories:
            if category.lower().startswith(first_word):
                return category

    return default


def clean_model_summary(text: Optional[str]) -> str:
    """Strip labels, lead-in phrases and quotes, then cut to summary size."""
    if not text:
        return ""
    summary = text.strip()
    summary = _LABEL_PREFIX.sub("", summary)
    summary = _LEAD_PHRASE.sub("", summary)
    summary = _QUOTES.sub("", summary).strip()
    return basic_summary(summary)


def is_valid_summary(summary: Optional[str], content: Optional[str]) -> bool:
    """Quality gate for AI-produced summaries."""
    if not summary or not summary.strip():
        return False
    summary = summary.strip()

    if len(summary) < MIN_SUMMARY_LENGTH:
        return False

    # A verbatim copy of the opening is not a summary
    if content and content.strip()[: len(summary)] == summary:
        return False

    if not any(mark in summary for mark in ".!?"):
        return False

    return not any(marker in summary for marker in FORBIDDEN_MARKUP)
