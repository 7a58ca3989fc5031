"""Record enrichment drivers: heuristics, LLM metadata, curation decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from architecture import extract_architecture
from batch_classifier import CurationResult
from code_links import extract_code_links
from config import PipelineConfig
from errors import LLMAuthError, LLMTransientError, StoreError
from llm_client import CompletionClient
from metadata_extractor import extract_metadata, results_to_metrics
from metric_extractor import extract_metrics
from models import Classification, EnrichmentFields, Metrics, Record
from rate_limiter import RateLimiter
from record_store import CsvRecordStore, RecordFilter
from specialty import classify_specialty
from text_normalizer import normalize

LOGGER = logging.getLogger(__name__)


class ExtractionState(str, Enum):
    UNPROCESSED = "unprocessed"
    EXTRACTING = "extracting"
    ENRICHED = "enriched"
    EXTRACTION_FAILED = "extraction-failed"


@dataclass(slots=True)
class RunSummary:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0

    def log(self, label: str) -> None:
        LOGGER.info(
            "%s complete. processed=%s succeeded=%s failed=%s skipped=%s",
            label,
            self.processed,
            self.succeeded,
            self.failed,
            self.skipped,
        )


def enrich_record(record: Record, reprocess: bool = False) -> EnrichmentFields:
    """Run the heuristic extractors over one record's normalized text.

    The extractors are independent of each other. Fields the record already
    has are left out of the result unless ``reprocess`` is set.
    """
    title = normalize(record.title)
    abstract = normalize(record.abstract_text)

    architecture = None
    if reprocess or record.architecture is None:
        architecture = extract_architecture(f"{title} {abstract}")

    metrics = None
    if reprocess or (record.metrics.auc is None and record.metrics.accuracy is None):
        found = extract_metrics(abstract)
        if found.auc is not None or found.accuracy is not None:
            metrics = record.metrics.merged_with(Metrics(auc=found.auc, accuracy=found.accuracy))

    specialty = None
    if reprocess or record.specialty is None:
        specialty = classify_specialty(title, abstract)

    code_links = None
    if reprocess or not record.code_links:
        links = extract_code_links(record.abstract_text)
        code_links = links or None

    return EnrichmentFields(
        specialty=specialty,
        architecture=architecture,
        metrics=metrics,
        code_links=code_links,
    )


def run_heuristic_enrichment(store: CsvRecordStore, config: PipelineConfig) -> RunSummary:
    records = store.list_records(RecordFilter(offset=config.start_from))
    LOGGER.info("Heuristic enrichment over %s records (reprocess=%s)", len(records), config.reprocess)

    summary = RunSummary()
    for position, record in enumerate(records, start=1):
        summary.processed += 1
        fields = enrich_record(record, reprocess=config.reprocess)
        if fields.is_empty():
            summary.skipped += 1
            continue
        try:
            store.upsert_enrichment(record.identifier, fields)
        except StoreError as exc:
            summary.failed += 1
            LOGGER.error("[%s/%s] Could not save %s: %s", position, len(records), record.identifier, exc)
            continue
        summary.succeeded += 1
        LOGGER.info(
            "[%s/%s] %s specialty=%s architecture=%s",
            position,
            len(records),
            record.identifier,
            fields.specialty or record.specialty,
            fields.architecture or record.architecture,
        )

    summary.log("Heuristic enrichment")
    return summary


def run_metadata_extraction(
    store: CsvRecordStore,
    client: CompletionClient,
    config: PipelineConfig,
    rate_limiter: RateLimiter,
) -> RunSummary:
    """Extract structured metadata for records that lack it.

    With ``config.reprocess`` every record is resubmitted. Records whose
    extraction fails stay without metadata and are picked up by the next run.
    LLMAuthError aborts the run; transient API errors count as a failure for
    that record only.
    """
    record_filter = RecordFilter(
        missing_metadata=not config.reprocess,
        offset=config.start_from,
        limit=config.batch_size,
    )
    records = store.list_records(record_filter)
    LOGGER.info(
        "Starting extraction (batch size: %s, starting from: %s, reprocess: %s): %s records",
        config.batch_size,
        config.start_from,
        config.reprocess,
        len(records),
    )

    summary = RunSummary()
    for position, record in enumerate(records, start=1):
        summary.processed += 1
        LOGGER.info("[%s/%s] Processing: %s", position, len(records), record.title[:50])
        state = extract_one(record, store=store, client=client, config=config, rate_limiter=rate_limiter)
        if state is ExtractionState.ENRICHED:
            summary.succeeded += 1
        else:
            summary.failed += 1

    summary.log("Metadata extraction")
    return summary


def extract_one(
    record: Record,
    *,
    store: CsvRecordStore,
    client: CompletionClient,
    config: PipelineConfig,
    rate_limiter: RateLimiter,
) -> ExtractionState:
    state = ExtractionState.EXTRACTING
    LOGGER.debug("%s -> %s", record.identifier, state.value)
    rate_limiter.wait()
    try:
        metadata = extract_metadata(record, client=client)
    except LLMAuthError:
        raise
    except LLMTransientError as exc:
        LOGGER.warning("Transient API failure for %s: %s", record.identifier, exc)
        return ExtractionState.EXTRACTION_FAILED

    if metadata is None:
        return ExtractionState.EXTRACTION_FAILED

    metrics = results_to_metrics(metadata.results)
    fields = EnrichmentFields(
        raw_metadata=metadata,
        metrics=None if metrics.is_empty() else record.metrics.merged_with(metrics),
    )
    try:
        store.upsert_enrichment(record.identifier, fields)
    except StoreError as exc:
        LOGGER.error("Could not save metadata for %s: %s", record.identifier, exc)
        return ExtractionState.EXTRACTION_FAILED
    return ExtractionState.ENRICHED


def apply_curation(store: CsvRecordStore, result: CurationResult) -> RunSummary:
    """Write keep/remove decisions. Already decided records are skipped."""
    summary = RunSummary()
    updates = [(i, Classification.REMOVE) for i in result.remove_ids]
    updates += [(i, Classification.KEEP) for i in result.keep_ids]

    for identifier, classification in updates:
        summary.processed += 1
        record = store.get(identifier)
        if record is None:
            summary.failed += 1
            LOGGER.warning("Decision for unknown record %s ignored", identifier)
            continue
        if record.classification is not Classification.UNCLASSIFIED:
            summary.skipped += 1
            continue
        try:
            store.upsert_enrichment(identifier, EnrichmentFields(classification=classification))
        except StoreError as exc:
            summary.failed += 1
            LOGGER.error("Could not save decision for %s: %s", identifier, exc)
            continue
        summary.succeeded += 1

    summary.log("Curation")
    return summary
