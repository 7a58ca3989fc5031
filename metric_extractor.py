"""Heuristic AUC / accuracy extraction from abstracts.

Each metric has an ordered list of patterns. The first pattern whose captured
number is plausible wins; implausible captures (sample percentages, tiny
decimals) fall through to the next pattern.

Values are compared on a percentage scale: a capture below 1 is read as a
fraction and multiplied by 100. The returned values are fractions in [0, 1].
"""

from __future__ import annotations

import re
from typing import NamedTuple

# Tunable plausibility bounds on the percentage scale. AUC excludes the low
# bound, accuracy includes both.
AUC_MIN_EXCLUSIVE = 10.0
AUC_MAX = 100.0
ACCURACY_MIN = 50.0
ACCURACY_MAX = 100.0

_NUMBER = r"(\d+(?:\.\d+)?)"
_FRACTION = r"(0\.\d+)"

AUC_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bAUC[^\d]*?" + _NUMBER + r"\s*%", re.IGNORECASE),
    re.compile(r"\bAUC[^\d]*?" + _FRACTION, re.IGNORECASE),
    re.compile(r"area\s+under[^\d]*?" + _NUMBER + r"\s*%", re.IGNORECASE),
    re.compile(r"area\s+under[^\d]*?" + _FRACTION, re.IGNORECASE),
    re.compile(r"\bAUROC[^\d]*?" + _NUMBER, re.IGNORECASE),
    re.compile(r"\bc[-\s]?statistic[^\d]*?" + _FRACTION, re.IGNORECASE),
)

ACCURACY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"accuracy[^\d]*?" + _NUMBER + r"\s*%", re.IGNORECASE),
    re.compile(_NUMBER + r"\s*%\s*accuracy", re.IGNORECASE),
    re.compile(r"accuracy[^\d]*?" + _FRACTION, re.IGNORECASE),
)


class ExtractedMetrics(NamedTuple):
    auc: float | None
    accuracy: float | None


def extract_metrics(text: str) -> ExtractedMetrics:
    """Find the reported AUC and accuracy in ``text``."""
    if not text:
        return ExtractedMetrics(auc=None, accuracy=None)
    return ExtractedMetrics(
        auc=_first_plausible(text, AUC_PATTERNS, _auc_is_plausible),
        accuracy=_first_plausible(text, ACCURACY_PATTERNS, _accuracy_is_plausible),
    )


def to_percentage_scale(value: float) -> float:
    return value * 100 if value < 1 else value


def _first_plausible(text, patterns, is_plausible) -> float | None:
    for pattern in patterns:
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = to_percentage_scale(float(match.group(1)))
        except ValueError:
            continue
        if is_plausible(value):
            return round(value / 100, 4)
    return None


def _auc_is_plausible(percentage: float) -> bool:
    return AUC_MIN_EXCLUSIVE < percentage <= AUC_MAX


def _accuracy_is_plausible(percentage: float) -> bool:
    return ACCURACY_MIN <= percentage <= ACCURACY_MAX
