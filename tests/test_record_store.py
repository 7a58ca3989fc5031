from __future__ import annotations

import csv
import json
from pathlib import Path
from unittest.mock import patch

import pytest

from errors import InvalidTransitionError, RecordNotFoundError
from metadata_extractor import parse_metadata
from models import Classification, EnrichmentFields, Metrics, Record
from record_store import CSV_COLUMNS, CsvRecordStore, RecordFilter


@pytest.fixture
def store(tmp_path: Path) -> CsvRecordStore:
    return CsvRecordStore(tmp_path / "records.csv")


def _record(identifier: str, **kwargs) -> Record:
    return Record(identifier=identifier, title=f"Title {identifier}", abstract_text="abstract", **kwargs)


def test_list_records_is_empty_without_file(store: CsvRecordStore) -> None:
    assert store.list_records() == []
    assert store.get("missing") is None


def test_add_record_writes_header_and_row(store: CsvRecordStore) -> None:
    assert store.add_record(_record("pubmed-1", tags=("Deep Learning", "Radiography")))

    with store.path.open(newline="", encoding="utf-8") as fh:
        reader = csv.DictReader(fh)
        rows = list(reader)
    assert reader.fieldnames == CSV_COLUMNS
    assert rows[0]["identifier"] == "pubmed-1"
    assert json.loads(rows[0]["tags"]) == ["Deep Learning", "Radiography"]
    assert rows[0]["classification"] == "unclassified"
    assert rows[0]["created_at"]


def test_add_record_skips_existing_identifier(store: CsvRecordStore) -> None:
    assert store.add_record(_record("hf-a")) is True
    assert store.add_record(_record("hf-a")) is False
    assert len(store.list_records()) == 1


def test_round_trip_preserves_fields(store: CsvRecordStore) -> None:
    record = _record(
        "hf-b",
        source="huggingface",
        source_url="https://huggingface.co/org/b",
        specialty="Radiology",
        architecture="U-Net",
        metrics=Metrics(auc=0.91, accuracy=0.875),
        code_links=("https://github.com/org/b",),
    )
    store.add_record(record)
    assert store.get("hf-b") == record


def test_list_records_filters_then_paginates(store: CsvRecordStore) -> None:
    for identifier in ("hf-a", "pubmed-1", "hf-b", "hf-c"):
        store.add_record(_record(identifier))

    hf_ids = [r.identifier for r in store.list_records(RecordFilter(id_prefix="hf-"))]
    assert hf_ids == ["hf-a", "hf-b", "hf-c"]

    page = store.list_records(RecordFilter(id_prefix="hf-", offset=1, limit=1))
    assert [r.identifier for r in page] == ["hf-b"]


def test_upsert_enrichment_merges_only_set_fields(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1", specialty="Radiology"))

    store.upsert_enrichment(
        "pubmed-1",
        EnrichmentFields(
            architecture="ResNet-50",
            metrics=Metrics(auc=0.94),
            code_links=("https://gitlab.com/g/p", "https://github.com/a/b"),
        ),
    )

    record = store.get("pubmed-1")
    assert record.specialty == "Radiology"
    assert record.architecture == "ResNet-50"
    assert record.metrics.auc == pytest.approx(0.94)
    assert record.code_links == ("https://gitlab.com/g/p", "https://github.com/a/b")
    with store.path.open(newline="", encoding="utf-8") as fh:
        row = next(csv.DictReader(fh))
    assert row["primary_repository"] == "https://github.com/a/b"


def test_upsert_enrichment_is_idempotent(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1"))
    fields = EnrichmentFields(specialty="Oncology", metrics=Metrics(accuracy=0.9))

    store.upsert_enrichment("pubmed-1", fields)
    first = store.get("pubmed-1")
    store.upsert_enrichment("pubmed-1", fields)

    assert store.get("pubmed-1") == first


def test_upsert_enrichment_unknown_record(store: CsvRecordStore) -> None:
    with pytest.raises(RecordNotFoundError):
        store.upsert_enrichment("nope", EnrichmentFields(specialty="Oncology"))


def test_classification_cannot_be_reversed(store: CsvRecordStore) -> None:
    store.add_record(_record("hf-a"))
    store.upsert_enrichment("hf-a", EnrichmentFields(classification=Classification.KEEP))
    store.upsert_enrichment("hf-a", EnrichmentFields(classification=Classification.KEEP))

    with pytest.raises(InvalidTransitionError):
        store.upsert_enrichment("hf-a", EnrichmentFields(classification=Classification.REMOVE))
    assert store.get("hf-a").classification is Classification.KEEP


def test_metadata_is_stored_and_filtered(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1"))
    store.add_record(_record("pubmed-2"))
    metadata = parse_metadata(
        json.dumps({"validation": {"type": "both", "externalDataset": "MIMIC-CXR"}, "modality": "CT"})
    )

    store.upsert_enrichment("pubmed-1", EnrichmentFields(raw_metadata=metadata))

    assert store.get("pubmed-1").raw_metadata == metadata
    missing = store.list_records(RecordFilter(missing_metadata=True))
    assert [r.identifier for r in missing] == ["pubmed-2"]
    with store.path.open(newline="", encoding="utf-8") as fh:
        row = next(csv.DictReader(fh))
    assert row["validation_type"] == "both"
    assert row["external_validation"] == "True"
    assert row["external_validation_sites"] == "MIMIC-CXR"


def test_invalid_stored_metadata_loads_as_missing(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1"))
    with store.path.open(newline="", encoding="utf-8") as fh:
        rows = list(csv.DictReader(fh))
    rows[0]["raw_metadata"] = '{"limitations": "not a list"}'
    with store.path.open("w", newline="", encoding="utf-8") as fh:
        writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS)
        writer.writeheader()
        writer.writerows(rows)

    assert store.get("pubmed-1").raw_metadata is None


def test_upsert_enrichment_keeps_unset_metric_columns(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1", metrics=Metrics(sensitivity=0.88, specificity=0.9)))

    store.upsert_enrichment("pubmed-1", EnrichmentFields(metrics=Metrics(auc=0.94)))

    metrics = store.get("pubmed-1").metrics
    assert metrics.auc == pytest.approx(0.94)
    assert metrics.sensitivity == pytest.approx(0.88)
    assert metrics.specificity == pytest.approx(0.9)


def test_rows_are_parsed_once_until_the_file_changes(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1"))
    store.add_record(_record("pubmed-2"))

    with patch("record_store.csv.DictReader", wraps=csv.DictReader) as reader:
        for identifier in ("pubmed-1", "pubmed-2"):
            store.upsert_enrichment(identifier, EnrichmentFields(specialty="Oncology"))
        assert [r.specialty for r in store.list_records()] == ["Oncology", "Oncology"]
        assert reader.call_count == 0

        CsvRecordStore(store.path).add_record(_record("hf-x"))
        reader.reset_mock()
        assert [r.identifier for r in store.list_records()] == ["pubmed-1", "pubmed-2", "hf-x"]
        assert reader.call_count == 1


def test_read_rows_returns_copies_of_cached_rows(store: CsvRecordStore) -> None:
    store.add_record(_record("pubmed-1"))

    store._read_rows()[0]["specialty"] = "Oncology"

    assert store.get("pubmed-1").specialty is None
