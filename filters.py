"""Title-pattern pre-filters (no LLM calls)."""

from __future__ import annotations

import re
from typing import NamedTuple

from models import Record

# Signals of tutorials, demos and throwaway uploads rather than research models.
EXCLUDE_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"tutorial",
        r"introduction",
        r"intro[-\s]",
        r"getting[-\s]started",
        r"how[-\s]to",
        r"guide",
        r"demo",
        r"example",
        r"sample",
        r"test[-\s]?model",
        r"playground",
        r"experiment",
        r"practice",
        r"learning",
        r"course",
        r"workshop",
        r"bootcamp",
        r"exercise",
        r"homework",
        r"assignment",
        r"my[-_]?awesome",
        r"my[-_]?first",
        r"hello[-_]?world",
        r"fine[-_]?tun(?:ed|ing)[-_]?(?:test|demo|example)",
    )
)

# Medical-research signals that override an exclude match, e.g.
# "BERT for Clinical NER: an introduction" stays for LLM review.
INCLUDE_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"clinical",
        r"medical",
        r"biomedical",
        r"diagnosis",
        r"detection",
        r"classification",
        r"segmentation",
        r"ner",
        r"bert",
        r"llama",
        r"gpt",
        r"transformer",
    )
)

_REVIEW_TITLE_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(p, re.IGNORECASE)
    for p in (
        r"\breview\b",
        r"\bmeta[-\s]?analysis\b",
        r"\bsystematic\b",
        r"\boverview\b",
        r"\bsurvey\b",
        r"\bstate[-\s]?of[-\s]?the[-\s]?art\b",
        r"\bguideline",
        r"\bconsensus\b",
        r"\bcommentary\b",
        r"\beditorial\b",
        r"\bletter to",
        r"\bopinion\b",
    )
)


class TitleFilterResult(NamedTuple):
    keep: list[Record]
    remove: list[Record]


def filter_by_title(records: list[Record]) -> TitleFilterResult:
    """Split records into survivors and obvious non-research uploads.

    A record is removed only when its title matches an exclude pattern AND
    no include pattern. Everything else survives to the LLM pass.
    """
    keep: list[Record] = []
    remove: list[Record] = []
    for record in records:
        if is_excluded_title(record.title):
            remove.append(record)
        else:
            keep.append(record)
    return TitleFilterResult(keep=keep, remove=remove)


def is_excluded_title(title: str) -> bool:
    if not any(p.search(title) for p in EXCLUDE_TITLE_PATTERNS):
        return False
    return not any(p.search(title) for p in INCLUDE_TITLE_PATTERNS)


def is_review_article(title: str) -> bool:
    """True for reviews, meta-analyses, editorials and similar non-primary work."""
    return any(p.search(title) for p in _REVIEW_TITLE_PATTERNS)
