"""CLI entrypoint for the medical AI curation pipeline."""

from __future__ import annotations

import argparse
import logging
import sys

import requests
from dotenv import load_dotenv

from batch_classifier import run_curation
from config import PipelineConfig
from enrichment import apply_curation, run_heuristic_enrichment, run_metadata_extraction
from errors import ConfigError, LLMAuthError
from hf_feed import fetch_hf_models
from llm_client import build_llm_client
from models import Classification, Record
from pubmed_feed import fetch_pubmed_records
from rate_limiter import RateLimiter
from record_store import CsvRecordStore, RecordFilter
from specialty import SPECIALTY_RULES, rule_for_slug


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line flags."""
    parser = argparse.ArgumentParser(description="Scrape, enrich and curate medical AI models and papers")
    commands = parser.add_subparsers(dest="command", required=True)

    pubmed = commands.add_parser("scrape-pubmed", help="Import AI papers from PubMed, one specialty at a time")
    pubmed.add_argument(
        "--specialty",
        choices=[rule.slug for rule in SPECIALTY_RULES],
        default=None,
        help="Only scrape this specialty (default: all)",
    )
    pubmed.add_argument("--max-results", type=int, default=200, help="PubMed search results per specialty")

    hf = commands.add_parser("scrape-hf", help="Import medical models from the Hugging Face hub")
    hf.add_argument("--limit", type=int, default=50, help="Models requested per search term")

    commands.add_parser("enrich", help="Run heuristic specialty/architecture/metric/code-link extraction")

    classify = commands.add_parser("classify", help="Keep/remove curation: title filter, then LLM batches")
    classify.add_argument(
        "--source-prefix",
        default="hf-",
        help="Only classify records whose identifier starts with this prefix",
    )
    classify.add_argument(
        "--apply",
        action="store_true",
        help="Write keep/remove decisions to the store (default: dry run)",
    )

    commands.add_parser("extract-metadata", help="LLM structured metadata for records that lack it")
    return parser.parse_args(argv)


def run_scrape_pubmed(
    store: CsvRecordStore,
    config: PipelineConfig,
    specialty_slug: str | None,
    max_results: int,
) -> None:
    rules = SPECIALTY_RULES if specialty_slug is None else (rule_for_slug(specialty_slug),)
    rate_limiter = RateLimiter(config.scrape_delay_seconds)

    created = 0
    skipped = 0
    failed: list[str] = []
    for rule in rules:
        logging.info("Scraping PubMed for %s", rule.name)
        try:
            records = fetch_pubmed_records(rule, max_results, rate_limiter=rate_limiter)
        except (requests.RequestException, ValueError, RuntimeError) as exc:
            logging.error("PubMed search for %s failed, skipping: %s", rule.name, exc)
            failed.append(rule.name)
            continue
        rule_created, rule_skipped = _save_records(store, records)
        created += rule_created
        skipped += rule_skipped
        logging.info("%s: created=%s skipped=%s", rule.name, rule_created, rule_skipped)

    logging.info("PubMed scrape complete. created=%s skipped=%s", created, skipped)
    if failed:
        logging.warning("PubMed search failed for %s specialties: %s", len(failed), ", ".join(failed))


def run_scrape_hf(store: CsvRecordStore, config: PipelineConfig, limit: int) -> None:
    # The hub is searched at most every two seconds, slower than E-utilities.
    rate_limiter = RateLimiter(max(config.scrape_delay_seconds, 2.0))
    records = fetch_hf_models(limit=limit, rate_limiter=rate_limiter)
    created, skipped = _save_records(store, records)
    logging.info("Hugging Face scrape complete. created=%s skipped=%s", created, skipped)


def run_classify(store: CsvRecordStore, config: PipelineConfig, source_prefix: str, apply: bool) -> None:
    records = store.list_records(
        RecordFilter(id_prefix=source_prefix or None, classification=Classification.UNCLASSIFIED)
    )
    logging.info("Classifying %s unclassified records (prefix=%r)", len(records), source_prefix)
    if not records:
        return

    client = build_llm_client(config)
    result = run_curation(
        records,
        config.batch_size,
        client=client,
        rate_limiter=RateLimiter(config.classify_delay_seconds),
    )

    logging.info(
        "Curation summary: title_removed=%s llm_keep=%s llm_remove=%s unclassified=%s",
        len(result.title_removed),
        len(result.llm_decisions.keep_ids),
        len(result.llm_decisions.remove_ids),
        len(result.unclassified_ids),
    )
    if result.failed_batch_index is not None:
        logging.warning(
            "LLM pass stopped at batch %s; rerun to classify the rest",
            result.failed_batch_index + 1,
        )

    if not apply:
        for identifier in result.remove_ids:
            logging.info("[dry-run] Would remove: %s", identifier)
        logging.info("[dry-run] No changes written. Rerun with --apply to save decisions.")
        return

    apply_curation(store, result)


def run_extract_metadata(store: CsvRecordStore, config: PipelineConfig) -> None:
    client = build_llm_client(config)
    run_metadata_extraction(store, client, config, RateLimiter(config.extract_delay_seconds))


def _save_records(store: CsvRecordStore, records: list[Record]) -> tuple[int, int]:
    created = 0
    skipped = 0
    for record in records:
        if store.add_record(record):
            created += 1
            logging.info("Created: %s", record.title[:60])
        else:
            skipped += 1
    return created, skipped


def main(argv: list[str] | None = None) -> int:
    """Initialize config and execute one subcommand. Returns the exit code."""
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    args = parse_args(argv)

    try:
        config = PipelineConfig.from_env()
        store = CsvRecordStore(config.records_csv_path)

        if args.command == "scrape-pubmed":
            run_scrape_pubmed(store, config, args.specialty, args.max_results)
        elif args.command == "scrape-hf":
            run_scrape_hf(store, config, args.limit)
        elif args.command == "enrich":
            run_heuristic_enrichment(store, config)
        elif args.command == "classify":
            run_classify(store, config, args.source_prefix, args.apply)
        elif args.command == "extract-metadata":
            run_extract_metadata(store, config)
    except (ConfigError, LLMAuthError) as exc:
        logging.error("%s", exc)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
