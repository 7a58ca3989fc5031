"""Shared typed models for the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from enum import Enum

from architecture import ARCHITECTURE_NAMES
from metadata_schema import StructuredMetadata
from specialty import OTHER_SPECIALTY, SPECIALTY_NAMES


class Classification(str, Enum):
    """Curation lifecycle state set by the keep/remove pipeline."""

    UNCLASSIFIED = "unclassified"
    KEEP = "keep"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class Metrics:
    """Reported performance, always as decimals in [0, 1]."""

    auc: float | None = None
    accuracy: float | None = None
    sensitivity: float | None = None
    specificity: float | None = None
    f1_score: float | None = None
    ppv: float | None = None
    npv: float | None = None

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None and not 0.0 <= value <= 1.0:
                raise ValueError(f"metric {f.name}={value!r} is outside [0, 1]")

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def merged_with(self, other: Metrics) -> Metrics:
        """Return a copy where values set on ``other`` replace ours."""
        values = {
            f.name: getattr(other, f.name)
            if getattr(other, f.name) is not None
            else getattr(self, f.name)
            for f in fields(self)
        }
        return Metrics(**values)


@dataclass(frozen=True, slots=True)
class Record:
    """Normalized paper/model record used across ingestion and enrichment."""

    identifier: str
    title: str
    abstract_text: str = ""
    source: str = "manual"
    source_url: str = ""
    tags: tuple[str, ...] = ()
    specialty: str | None = None
    architecture: str | None = None
    metrics: Metrics = field(default_factory=Metrics)
    code_links: tuple[str, ...] = ()
    classification: Classification = Classification.UNCLASSIFIED
    raw_metadata: StructuredMetadata | None = None

    def __post_init__(self) -> None:
        if not self.identifier:
            raise ValueError("Record identifier must be non-empty")
        if not self.title or not self.title.strip():
            raise ValueError(f"Record {self.identifier} has an empty title")
        if self.architecture is not None and self.architecture not in ARCHITECTURE_NAMES:
            raise ValueError(f"Unknown architecture {self.architecture!r}")
        if self.specialty is not None and self.specialty not in _VALID_SPECIALTIES:
            raise ValueError(f"Unknown specialty {self.specialty!r}")


_VALID_SPECIALTIES = frozenset(SPECIALTY_NAMES) | {OTHER_SPECIALTY}


@dataclass(frozen=True, slots=True)
class EnrichmentFields:
    """Partial update for one record. ``None`` means "leave unchanged"."""

    specialty: str | None = None
    architecture: str | None = None
    metrics: Metrics | None = None
    code_links: tuple[str, ...] | None = None
    classification: Classification | None = None
    raw_metadata: StructuredMetadata | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))
