"""Hugging Face model hub ingestion for medical AI models."""

from __future__ import annotations

import logging
import re
from typing import Any, Sequence

import requests

from models import Record
from rate_limiter import RateLimiter

# Public model listing endpoint; results sorted by downloads, most first.
HF_MODELS_API_URL = "https://huggingface.co/api/models"
REQUEST_TIMEOUT_SECONDS = 20
_SLUG_MAX_LEN = 80
_DESCRIPTION_TAGS = 10

MEDICAL_SEARCHES: tuple[str, ...] = (
    "medical",
    "clinical",
    "healthcare",
    "radiology",
    "pathology",
    "x-ray",
    "ct-scan",
    "mri",
    "ultrasound",
    "ecg",
    "eeg",
    "diagnosis",
    "biomedical",
    "chest-xray",
    "skin-lesion",
    "retinal",
    "mammography",
    "covid",
    "tumor",
    "cancer",
    "pneumonia",
    "diabetic-retinopathy",
)

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")

LOGGER = logging.getLogger(__name__)


def fetch_hf_models(
    search_terms: Sequence[str] = MEDICAL_SEARCHES,
    limit: int = 50,
    *,
    session: requests.Session | None = None,
    rate_limiter: RateLimiter,
) -> list[Record]:
    """Search the hub once per term and return de-duplicated Records.

    A failed search is logged and skipped so one bad term does not lose the
    rest of the sweep.

    Args:
        search_terms: Hub search queries, run in order.
        limit: Max models requested per search term.
        session: Optional requests session (tests pass a mock).
        rate_limiter: Paces consecutive searches.
    """
    http = session or requests.Session()
    records_by_id: dict[str, Record] = {}

    for term in search_terms:
        rate_limiter.wait()
        try:
            response = http.get(
                HF_MODELS_API_URL,
                params={
                    "search": term,
                    "limit": str(limit),
                    "sort": "downloads",
                    "direction": "-1",
                },
                timeout=REQUEST_TIMEOUT_SECONDS,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.warning("HF search failed for term=%r, skipping: %s", term, exc)
            continue

        try:
            found = _parse_models_payload(response.json())
        except (ValueError, RuntimeError) as exc:
            LOGGER.warning("HF search returned an unusable payload for term=%r, skipping: %s", term, exc)
            continue

        new_ids = 0
        for record in found:
            if record.identifier not in records_by_id:
                records_by_id[record.identifier] = record
                new_ids += 1

        LOGGER.info("HF search: term=%r raw_count=%s new_unique=%s", term, len(found), new_ids)

    LOGGER.info("HF search complete: terms=%s unique_models=%s", len(search_terms), len(records_by_id))
    return list(records_by_id.values())


def _parse_models_payload(payload: Any) -> list[Record]:
    """Parse a /api/models listing; private or id-less entries are dropped."""
    if not isinstance(payload, list):
        raise RuntimeError("Unexpected HF models payload shape: expected a list")

    parsed: list[Record] = []
    for item in payload:
        if not isinstance(item, dict) or item.get("private") is True:
            continue

        model_id = _as_str(item.get("modelId")) or _as_str(item.get("id"))
        if not model_id:
            continue
        slug = generate_slug(model_id)
        if not slug:
            continue

        tags = tuple(t.strip() for t in item.get("tags") or [] if isinstance(t, str) and t.strip())
        description = f"Hugging Face model: {model_id}. Tags: {', '.join(tags[:_DESCRIPTION_TAGS])}"

        parsed.append(
            Record(
                identifier=f"hf-{slug}",
                title=model_id.rsplit("/", 1)[-1] or model_id,
                abstract_text=description,
                source="huggingface",
                source_url=f"https://huggingface.co/{model_id}",
                tags=tags,
            )
        )

    return parsed


def generate_slug(model_id: str) -> str:
    """Lower-case, runs of non-alphanumerics to '-', trimmed, at most 80 chars."""
    return _NON_SLUG_RE.sub("-", model_id.lower()).strip("-")[:_SLUG_MAX_LEN]


def _as_str(value: Any) -> str | None:
    return value.strip() if isinstance(value, str) and value.strip() else None
