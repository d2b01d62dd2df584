"""
Deterministic Enrichment Rules
==============================

Keyword categorization and sentence-boundary summaries used whenever the
AI backend is disabled, unavailable or returns something unusable. Both
functions are pure: equal input always gives equal output.
"""

import re
from typing import Dict, List, Optional, Pattern, Tuple

DEFAULT_CATEGORY = "Общество"

SUMMARY_LIMIT = 200
MIN_SENTENCE_CUT = 80
ELLIPSIS = "..."

# Checked in this order; the first category with a hit wins.
CATEGORY_KEYWORDS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("Экономика", (
        "экономик", "финанс", "банк", "рубль", "рубля", "доллар", "инвестиц",
        "бизнес", "акци", "биржа", "торг", "валют", "инфляц", "цб",
        "центробанк", "кредит", "млрд", "млн", "фонд", "инвестфонд", "облигац",
        "бонд", "ценн", "капитал", "прибыл", "убыт", "выручк", "дивиденд",
        "ипотек", "займ", "долг", "процент",
    )),
    ("Политика", (
        "политик", "выбор", "правительств", "президент", "министр",
        "парламент", "медведев", "путин", "дума", "депутат", "закон",
        "санкц", "дипломат", "госдеп", "мид", "кремл", "белый дом",
        "конгресс", "сенат",
    )),
    ("Технологии", (
        "технолог", "программ", "компьютер", "софт", "it", "интернет",
        "цифров", "код", "разработ", "api", "github", "python", "java",
        "javascript", "данных", "искусственн", "нейрон", "машинн", "алгоритм",
        "сервер", "облак", "приложен", "хард", "процессор", "чип", "смартфон",
        "гаджет",
    )),
    ("Спорт", (
        "спорт", "футбол", "хоккей", "олимпиад", "чемпионат", "матч",
        "команд", "игрок", "тренер", "турнир", "финал", "победа",
    )),
    ("Наука", (
        "наук", "исследован", "открыт", "ученые", "учёные", "эксперимент",
        "изучен", "научн", "лаборатор", "университет", "академи",
    )),
    ("Здоровье", (
        "здоровь", "медицин", "врач", "лечен", "болезн", "вакцин", "пациент",
        "клиник", "больниц", "терапи", "диагност",
    )),
    ("Культура", (
        "культур", "искусств", "театр", "кино", "музык", "выставк",
    )),
    ("Образование", (
        "образован", "школ", "студент", "учител", "экзамен",
    )),
    ("Путешествия", (
        "путешеств", "туризм", "отдых", "курорт", "экскурси",
    )),
)

# The categories the AI backend may choose from.
AI_CATEGORIES: List[str] = [
    "Технологии", "Спорт", "Политика", "Экономика", "Наука",
    "Культура", "Общество", "Здоровье", "Образование", "Путешествия",
]


def _keyword_pattern(keyword: str) -> str:
    # Short stems only match at a word start; short latin words match whole
    escaped = re.escape(keyword)
    if len(keyword) > 3:
        return escaped
    if keyword.isascii():
        return rf"\b{escaped}\b"
    return rf"\b{escaped}"


def _compile_rules() -> List[Tuple[str, Pattern]]:
    return [
        (category, re.compile("|".join(_keyword_pattern(k) for k in keywords)))
        for category, keywords in CATEGORY_KEYWORDS
    ]


_CATEGORY_RULES = _compile_rules()


def categorize_by_keywords(title: Optional[str], body: Optional[str]) -> str:
    """Category for an article from keyword stems in its title and body."""
    text = f"{title or ''} {body or ''}".lower()
    for category, pattern in _CATEGORY_RULES:
        if pattern.search(text):
            return category
    return DEFAULT_CATEGORY


def category_keywords() -> Dict[str, Tuple[str, ...]]:
    return dict(CATEGORY_KEYWORDS)


def _sentence_ends(window: str) -> List[int]:
    return [
        i for i in range(len(window) - 1)
        if window[i] in ".!?" and window[i + 1].isspace()
    ]


def basic_summary(content: Optional[str]) -> str:
    """Short summary cut at a sentence boundary within 200 characters.

    Texts of at most 200 characters are returned unchanged. Longer texts
    are cut after the first sentence if it ends at position 80 or later,
    otherwise after the second sentence; failing that, at the last space
    past position 80 with an ellipsis, and finally hard-cut with an
    ellipsis. The result is always shorter than the input.
    """
    if not content:
        return ""
    if len(content) <= SUMMARY_LIMIT:
        return content

    window = content[:SUMMARY_LIMIT]

    for index, pos in enumerate(_sentence_ends(window)):
        if pos >= MIN_SENTENCE_CUT or index >= 1:
            return window[: pos + 1].strip()

    # Leave room for the ellipsis so the result never reaches the input length
    short_window = content[: SUMMARY_LIMIT - len(ELLIPSIS)]
    last_space = short_window.rfind(" ")
    if last_space > MIN_SENTENCE_CUT:
        return short_window[:last_space].rstrip() + ELLIPSIS

    return short_window + ELLIPSIS
