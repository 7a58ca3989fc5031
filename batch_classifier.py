"""Batched keep/remove classification of scraped records with an LLM.

Records go to the model in fixed-size batches, one request at a time, with a
rate-limiter pause before every request. The model answers one line per
record (``<id> KEEP`` / ``<id> REMOVE``); lines that do not parse are skipped
and their records stay unclassified.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from errors import BatchClassificationError, LLMAuthError, LLMError, LLMResponseError
from filters import filter_by_title
from llm_client import CompletionClient
from models import Record
from rate_limiter import RateLimiter

LOGGER = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 50
DEFAULT_MAX_TOKENS = 2000
_DESCRIPTION_MAX_LEN = 600
_MAX_TAGS = 10

_DECISION_RE = re.compile(
    r"^\s*(?:[-*]\s+|\d+[.)]\s+)?(?:ID:\s*)?(\S+?):?\s+(KEEP|REMOVE)\b",
    re.IGNORECASE,
)

CLASSIFY_PROMPT_TEMPLATE = """You are classifying medical AI models from Hugging Face and the literature.

KEEP models that are:
- Original research models (published or pre-trained for medical use)
- Medical NLP models (NER, classification, embeddings)
- Medical imaging models (classification, segmentation, detection)
- Clinical decision support models
- Biomedical language models

REMOVE models that are:
- Tutorials, demos, examples, or learning exercises
- Test uploads or experiments (e.g., "my_test_model", "experiment1")
- Duplicate quantized versions (GGUF, GPTQ, AWQ, i1-GGUF, etc.) - keep ONE version per base model
- Non-medical models that happen to have medical keywords
- Clearly incomplete or broken models
- Personal fine-tuning experiments without research value

For each model, respond with ONLY the ID followed by KEEP or REMOVE. One per line.

Models to classify:

{model_list}

Respond in format:
<model_id> KEEP
<model_id> REMOVE
..."""


@dataclass(slots=True)
class BatchDecisions:
    """Identifiers decided KEEP or REMOVE, in prompt order across batches."""

    keep_ids: list[str] = field(default_factory=list)
    remove_ids: list[str] = field(default_factory=list)

    def extend(self, other: BatchDecisions) -> None:
        self.keep_ids.extend(other.keep_ids)
        self.remove_ids.extend(other.remove_ids)

    def decided(self) -> set[str]:
        return set(self.keep_ids) | set(self.remove_ids)


@dataclass(slots=True)
class CurationResult:
    """Outcome of the two-pass curation (title filter, then LLM)."""

    title_removed: list[Record]
    llm_decisions: BatchDecisions
    unclassified_ids: list[str]
    failed_batch_index: int | None = None

    @property
    def remove_ids(self) -> list[str]:
        return [r.identifier for r in self.title_removed] + self.llm_decisions.remove_ids

    @property
    def keep_ids(self) -> list[str]:
        return list(self.llm_decisions.keep_ids)


def partition(records: list[Record], batch_size: int) -> list[list[Record]]:
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [records[i : i + batch_size] for i in range(0, len(records), batch_size)]


def build_classification_prompt(batch: list[Record]) -> str:
    entries = []
    for index, record in enumerate(batch, start=1):
        tags = ", ".join(record.tags[:_MAX_TAGS]) if record.tags else "N/A"
        entries.append(
            f"{index}. ID: {record.identifier}\n"
            f"   Name: {record.title}\n"
            f"   Description: {_truncate(record.abstract_text) or 'N/A'}\n"
            f"   Source: {record.source_url or 'N/A'}\n"
            f"   Tags: {tags}"
        )
    return CLASSIFY_PROMPT_TEMPLATE.format(model_list="\n\n".join(entries))


def parse_decisions(text: str, batch_ids: list[str] | None = None) -> BatchDecisions:
    """Parse a line-oriented KEEP/REMOVE response.

    Malformed lines are skipped. When ``batch_ids`` is given, ids outside the
    batch are ignored and the result follows the order of ``batch_ids``;
    otherwise it follows response order. The first decision for an id wins.
    """
    allowed = set(batch_ids) if batch_ids is not None else None
    verdicts: dict[str, str] = {}
    for line in (text or "").splitlines():
        match = _DECISION_RE.match(line)
        if not match:
            if line.strip():
                LOGGER.debug("Skipping unparseable classifier line: %r", line)
            continue
        identifier, action = match.group(1), match.group(2).upper()
        if allowed is not None and identifier not in allowed:
            LOGGER.debug("Ignoring decision for id outside batch: %s", identifier)
            continue
        verdicts.setdefault(identifier, action)

    order = batch_ids if batch_ids is not None else list(verdicts)
    decisions = BatchDecisions()
    for identifier in order:
        action = verdicts.get(identifier)
        if action == "KEEP":
            decisions.keep_ids.append(identifier)
        elif action == "REMOVE":
            decisions.remove_ids.append(identifier)
    return decisions


def classify_batch(
    records: list[Record],
    batch_size: int = DEFAULT_BATCH_SIZE,
    *,
    client: CompletionClient,
    rate_limiter: RateLimiter,
    model: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> BatchDecisions:
    """Classify records KEEP/REMOVE in sequential batches.

    Raises:
        LLMAuthError: credentials rejected; nothing after it can succeed.
        BatchClassificationError: any other API failure. ``partial`` carries
            the decisions from the batches that completed before it. A reply
            with no usable text only leaves that batch unclassified.
    """
    batches = partition(records, batch_size)
    decisions = BatchDecisions()

    for index, batch in enumerate(batches):
        LOGGER.info("Processing batch %s/%s (%s records)", index + 1, len(batches), len(batch))
        batch_ids = [r.identifier for r in batch]
        rate_limiter.wait()
        try:
            completion = client.complete(
                build_classification_prompt(batch),
                max_tokens=max_tokens,
                model=model,
            )
        except LLMAuthError:
            raise
        except LLMResponseError as exc:
            # Same as an unparseable reply: this batch stays unclassified.
            LOGGER.warning("Batch %s/%s returned no usable text: %s", index + 1, len(batches), exc)
            continue
        except LLMError as exc:
            raise BatchClassificationError(
                f"Classifier batch {index + 1}/{len(batches)} failed: {exc}",
                batch_index=index,
                partial=decisions,
            ) from exc

        batch_decisions = parse_decisions(completion.text, batch_ids)
        undecided = len(batch) - len(batch_decisions.decided())
        LOGGER.info(
            "Batch %s: keep=%s remove=%s undecided=%s",
            index + 1,
            len(batch_decisions.keep_ids),
            len(batch_decisions.remove_ids),
            undecided,
        )
        decisions.extend(batch_decisions)

    return decisions


def run_curation(
    records: list[Record],
    batch_size: int = DEFAULT_BATCH_SIZE,
    *,
    client: CompletionClient,
    rate_limiter: RateLimiter,
    model: str | None = None,
) -> CurationResult:
    """Two-pass curation: title pre-filter, then the batched LLM classifier.

    A failed batch stops the LLM pass; decisions from earlier batches are kept
    and everything not yet decided is reported as unclassified.
    """
    survivors, title_removed = filter_by_title(records)
    LOGGER.info(
        "Title filter: total=%s removed=%s remaining=%s",
        len(records),
        len(title_removed),
        len(survivors),
    )

    failed_batch: int | None = None
    try:
        decisions = classify_batch(
            survivors,
            batch_size,
            client=client,
            rate_limiter=rate_limiter,
            model=model,
        )
    except BatchClassificationError as exc:
        LOGGER.error("LLM pass stopped at batch %s: %s", exc.batch_index + 1, exc)
        decisions = exc.partial
        failed_batch = exc.batch_index

    decided = decisions.decided()
    unclassified = [r.identifier for r in survivors if r.identifier not in decided]
    return CurationResult(
        title_removed=title_removed,
        llm_decisions=decisions,
        unclassified_ids=unclassified,
        failed_batch_index=failed_batch,
    )


def _truncate(text: str, max_len: int = _DESCRIPTION_MAX_LEN) -> str:
    value = (text or "").strip()
    if len(value) <= max_len:
        return value
    return value[: max_len - 1] + "…"
