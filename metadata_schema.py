"""Typed schema for LLM-extracted structured metadata."""

from __future__ import annotations

from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

SCHEMA_VERSION = 1


def _none_to_list(value: Any) -> Any:
    # Models sometimes answer null where the prompt asks for an empty array.
    return [] if value is None else value


_StrList = Annotated[list[str], BeforeValidator(_none_to_list)]


class _Section(BaseModel):
    # Responses use camelCase keys; unknown keys are ignored.
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class DatasetDetail(_Section):
    name: str | None = None
    total: int | float | str | None = None
    breakdown: Annotated[list[dict[str, Any]], BeforeValidator(_none_to_list)] = Field(default_factory=list)


class Dataset(_Section):
    description: str | None = None
    total_samples: int | float | str | None = None
    training_samples: int | float | str | None = None
    validation_samples: int | float | str | None = None
    test_samples: int | float | str | None = None
    details: Annotated[list[DatasetDetail], BeforeValidator(_none_to_list)] = Field(default_factory=list)
    source: str | list[str] | None = None


class Methodology(_Section):
    approach: str | None = None
    architecture: str | None = None
    base_model: str | None = None
    fine_tuning: bool | None = None
    segmentation: bool | None = None
    classification: bool | None = None
    detection: bool | None = None
    parameters: str | int | float | None = None
    techniques: _StrList = Field(default_factory=list)
    framework: str | None = None


class Validation(_Section):
    type: str | None = None
    cross_validation: str | int | None = None
    external_dataset: str | list[str] | None = None
    prospective: bool | None = None
    multi_center: bool | None = None
    comparison_with_experts: bool | None = None


class Results(_Section):
    """Reported performance numbers.

    Numeric fields are left loosely typed: models return plain numbers,
    numeric strings, or objects keyed by subgroup. metadata_extractor.coerce_number
    turns them into floats.
    """

    accuracy: Any = None
    sensitivity: Any = None
    specificity: Any = None
    auc: Any = None
    auc_ci: str | None = Field(default=None, alias="aucCI")
    f1_score: Any = None
    precision: Any = None
    recall: Any = None
    npv: Any = None
    ppv: Any = None
    dice_score: Any = None
    iou: Any = None
    summary: str | None = None


class StructuredMetadata(_Section):
    """Validated, versioned metadata for one record.

    ``schema_version`` is stored with every row so older payloads can be
    recognised if the shape changes.
    """

    schema_version: int = SCHEMA_VERSION
    objective: str | None = None
    dataset: Dataset | None = None
    methodology: Methodology | None = None
    validation: Validation | None = None
    results: Results | None = None
    clinical_implications: _StrList = Field(default_factory=list)
    limitations: _StrList = Field(default_factory=list)
    modality: str | None = None
    body_part: str | None = None
    target_condition: str | None = None
    secondary_conditions: _StrList = Field(default_factory=list)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
