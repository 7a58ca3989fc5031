"""CSV-backed record store for scraped and enriched records."""

from __future__ import annotations

import csv
import json
import logging
import os
import tempfile
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from code_links import primary_repository
from errors import InvalidTransitionError, RecordNotFoundError, StoreError
from metadata_extractor import validation_summary
from metadata_schema import StructuredMetadata
from models import Classification, EnrichmentFields, Metrics, Record

LOGGER = logging.getLogger(__name__)

_METRIC_COLUMNS = ["auc", "accuracy", "sensitivity", "specificity", "f1_score", "ppv", "npv"]

CSV_COLUMNS = [
    "identifier",
    "title",
    "abstract_text",
    "source",
    "source_url",
    "tags",                       # JSON array
    # Heuristic enrichment
    "specialty",
    "architecture",
    *_METRIC_COLUMNS,             # decimals in [0, 1]
    "code_links",                 # JSON array
    "primary_repository",
    # Curation
    "classification",             # unclassified | keep | remove
    # LLM structured metadata
    "raw_metadata",               # JSON object, re-validated on load
    "validation_type",
    "external_validation",
    "external_validation_sites",
    "created_at",
    "updated_at",
]


@dataclass(frozen=True, slots=True)
class RecordFilter:
    """Selection for list_records. Offset/limit apply after the predicates."""

    id_prefix: str | None = None
    missing_metadata: bool = False
    classification: Classification | None = None
    offset: int = 0
    limit: int | None = None

    def matches(self, record: Record) -> bool:
        if self.id_prefix and not record.identifier.startswith(self.id_prefix):
            return False
        if self.missing_metadata and record.raw_metadata is not None:
            return False
        if self.classification is not None and record.classification is not self.classification:
            return False
        return True


class CsvRecordStore:
    """Records persisted as one CSV row each.

    Every write rewrites the file through a temp file + rename, so each
    per-record update is independent: a crash mid-run never loses records
    that were already saved.

    Parsed rows are cached and keyed on the file's inode, size and mtime, so
    a run that updates records one at a time only re-parses the CSV when
    something else has replaced it.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        self._cache: tuple[tuple[int, int, int], list[dict[str, str]]] | None = None

    def add_record(self, record: Record) -> bool:
        """Insert a new record. Returns False if the identifier already exists."""
        rows = self._read_rows()
        if any(row.get("identifier") == record.identifier for row in rows):
            return False
        now = datetime.now(UTC).isoformat()
        row = _record_to_row(record)
        row["created_at"] = now
        row["updated_at"] = now
        rows.append(row)
        self._write_rows(rows)
        LOGGER.debug("Added record %s to %s", record.identifier, self.path)
        return True

    def get(self, identifier: str) -> Record | None:
        for row in self._read_rows():
            if row.get("identifier") == identifier:
                return _row_to_record(row)
        return None

    def list_records(self, record_filter: RecordFilter | None = None) -> list[Record]:
        record_filter = record_filter or RecordFilter()
        selected = [
            record
            for record in (_row_to_record(row) for row in self._read_rows())
            if record_filter.matches(record)
        ]
        end = None if record_filter.limit is None else record_filter.offset + record_filter.limit
        return selected[record_filter.offset : end]

    def upsert_enrichment(self, identifier: str, fields: EnrichmentFields) -> None:
        """Merge ``fields`` into the stored record; unset fields are untouched.

        Calling this again with the same fields is a no-op in effect.

        Raises:
            RecordNotFoundError: no record with ``identifier``.
            InvalidTransitionError: the record is already keep/remove and
                ``fields`` asks for the other value.
        """
        rows = self._read_rows()
        for row in rows:
            if row.get("identifier") == identifier:
                _merge_into_row(row, fields)
                row["updated_at"] = datetime.now(UTC).isoformat()
                break
        else:
            raise RecordNotFoundError(f"No record with identifier {identifier!r}")

        self._write_rows(rows)
        LOGGER.debug("Upserted enrichment for %s", identifier)

    def _read_rows(self) -> list[dict[str, str]]:
        try:
            stat = self.path.stat()
        except FileNotFoundError:
            self._cache = None
            return []
        except OSError as exc:
            raise StoreError(f"Could not read {self.path}: {exc}") from exc

        key = _stat_key(stat)
        if self._cache is None or self._cache[0] != key:
            try:
                with self.path.open(newline="", encoding="utf-8") as fh:
                    rows = list(csv.DictReader(fh))
            except (OSError, csv.Error) as exc:
                raise StoreError(f"Could not read {self.path}: {exc}") from exc
            self._cache = (key, rows)
        # Callers mutate rows in place before writing; hand out copies.
        return [dict(row) for row in self._cache[1]]

    def _write_rows(self, rows: list[dict[str, Any]]) -> None:
        directory = self.path.parent if str(self.path.parent) else Path(".")
        directory.mkdir(parents=True, exist_ok=True)
        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=directory)
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
                writer = csv.DictWriter(fh, fieldnames=CSV_COLUMNS, extrasaction="ignore")
                writer.writeheader()
                writer.writerows(rows)
            os.replace(tmp_name, self.path)
            key = _stat_key(self.path.stat())
        except OSError as exc:
            raise StoreError(f"Could not write {self.path}: {exc}") from exc
        self._cache = (key, [{name: _cell(row.get(name)) for name in CSV_COLUMNS} for row in rows])


def _stat_key(stat: os.stat_result) -> tuple[int, int, int]:
    return (stat.st_ino, stat.st_size, stat.st_mtime_ns)


def _cell(value: Any) -> str:
    # Mirrors what csv.DictWriter writes and DictReader returns.
    return "" if value is None else str(value)


def _merge_into_row(row: dict[str, str], fields: EnrichmentFields) -> None:
    if fields.classification is not None:
        current = Classification(row.get("classification") or Classification.UNCLASSIFIED.value)
        if current is not Classification.UNCLASSIFIED and current is not fields.classification:
            raise InvalidTransitionError(
                f"Record {row.get('identifier')} is already {current.value}; "
                f"refusing to change it to {fields.classification.value}"
            )
        row["classification"] = fields.classification.value
    if fields.specialty is not None:
        row["specialty"] = fields.specialty
    if fields.architecture is not None:
        row["architecture"] = fields.architecture
    if fields.metrics is not None:
        # Unset metric fields keep whatever the row already holds.
        row.update(
            {name: value for name, value in _metrics_to_columns(fields.metrics).items() if value}
        )
    if fields.code_links is not None:
        row["code_links"] = json.dumps(list(fields.code_links))
        row["primary_repository"] = primary_repository(fields.code_links) or ""
    if fields.raw_metadata is not None:
        row.update(_metadata_to_columns(fields.raw_metadata))


def _record_to_row(record: Record) -> dict[str, Any]:
    row: dict[str, Any] = {
        "identifier": record.identifier,
        "title": record.title,
        "abstract_text": record.abstract_text,
        "source": record.source,
        "source_url": record.source_url,
        "tags": json.dumps(list(record.tags)),
        "specialty": record.specialty or "",
        "architecture": record.architecture or "",
        "code_links": json.dumps(list(record.code_links)),
        "primary_repository": primary_repository(record.code_links) or "",
        "classification": record.classification.value,
        "raw_metadata": "",
        "validation_type": "",
        "external_validation": "",
        "external_validation_sites": "",
    }
    row.update(_metrics_to_columns(record.metrics))
    if record.raw_metadata is not None:
        row.update(_metadata_to_columns(record.raw_metadata))
    return row


def _metrics_to_columns(metrics: Metrics) -> dict[str, str]:
    return {
        name: "" if getattr(metrics, name) is None else repr(getattr(metrics, name))
        for name in _METRIC_COLUMNS
    }


def _metadata_to_columns(metadata: StructuredMetadata) -> dict[str, str]:
    summary = validation_summary(metadata.validation)
    return {
        "raw_metadata": metadata.to_json(),
        "validation_type": summary.validation_type or "",
        "external_validation": str(summary.external_validation),
        "external_validation_sites": summary.external_sites or "",
    }


def _row_to_record(row: dict[str, str]) -> Record:
    return Record(
        identifier=row["identifier"],
        title=row.get("title", ""),
        abstract_text=row.get("abstract_text") or "",
        source=row.get("source") or "manual",
        source_url=row.get("source_url") or "",
        tags=tuple(_json_list(row.get("tags"))),
        specialty=row.get("specialty") or None,
        architecture=row.get("architecture") or None,
        metrics=Metrics(**{name: _float(row.get(name)) for name in _METRIC_COLUMNS}),
        code_links=tuple(_json_list(row.get("code_links"))),
        classification=Classification(row.get("classification") or Classification.UNCLASSIFIED.value),
        raw_metadata=_load_metadata(row),
    )


def _load_metadata(row: dict[str, str]) -> StructuredMetadata | None:
    raw = row.get("raw_metadata")
    if not raw:
        return None
    try:
        return StructuredMetadata.model_validate_json(raw)
    except ValidationError as exc:
        # Treated as missing so the record is re-extracted on the next run.
        LOGGER.warning("Stored metadata for %s is invalid: %s", row.get("identifier"), exc)
        return None


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [str(v) for v in parsed] if isinstance(parsed, list) else []


def _float(value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        return None
