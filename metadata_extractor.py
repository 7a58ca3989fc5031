"""Per-record structured metadata extraction with an LLM JSON prompt."""

from __future__ import annotations

import json
import logging
import math
import re
from json import JSONDecodeError
from typing import Any, NamedTuple

from pydantic import ValidationError

from errors import LLMResponseError, MetadataValidationError
from llm_client import CompletionClient
from metadata_schema import Results, StructuredMetadata, Validation
from models import Metrics, Record
from text_normalizer import normalize

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 2000

# Leading number of strings like "0.94 (95% CI 0.91-0.97)" or "93.2%".
_LEADING_NUMBER_RE = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?")

EXTRACTION_PROMPT = """Analyze this medical AI model abstract and extract ALL available structured information. Return ONLY valid JSON.

Model: "{name}"
Abstract: "{description}"

Extract this comprehensive JSON structure (use null for missing values, empty arrays if no items found):
{{
  "objective": "one sentence describing the main goal",

  "dataset": {{
    "description": "brief description of data used",
    "totalSamples": number_or_null,
    "trainingSamples": number_or_null,
    "validationSamples": number_or_null,
    "testSamples": number_or_null,
    "details": [{{"name": "dataset name", "total": number_or_null, "breakdown": [{{"class": "class name", "count": number}}]}}],
    "source": "where data came from (hospital names, public datasets like TCGA, ImageNet, etc.)"
  }},

  "methodology": {{
    "approach": "main approach (e.g., Transfer Learning, End-to-end Training, Ensemble)",
    "architecture": "model architecture (e.g., ResNet-50, VGG-16, U-Net, Transformer, LSTM)",
    "baseModel": "pre-trained model used if transfer learning (e.g., ImageNet, RadImageNet)",
    "fineTuning": true/false/null,
    "segmentation": true/false/null,
    "classification": true/false/null,
    "detection": true/false/null,
    "parameters": "number of parameters if mentioned (e.g., '25M', '100M')",
    "techniques": ["technique1", "technique2"],
    "framework": "deep learning framework if mentioned (PyTorch, TensorFlow, Keras)"
  }},

  "validation": {{
    "type": "internal/external/both/cross-validation/null",
    "crossValidation": "k-fold number if mentioned (e.g., '5-fold', '10-fold')",
    "externalDataset": "name of external validation dataset if used",
    "prospective": true/false/null,
    "multiCenter": true/false/null,
    "comparisonWithExperts": true/false/null
  }},

  "results": {{
    "accuracy": number_as_percentage_or_null,
    "sensitivity": number_as_percentage_or_null,
    "specificity": number_as_percentage_or_null,
    "auc": number_between_0_and_1_or_null,
    "aucCI": "confidence interval if mentioned (e.g., '0.94-0.98')",
    "f1Score": number_or_null,
    "precision": number_or_null,
    "recall": number_or_null,
    "npv": number_or_null,
    "ppv": number_or_null,
    "diceScore": number_or_null,
    "iou": number_or_null,
    "summary": "brief results summary with key findings"
  }},

  "clinicalImplications": ["implication1", "implication2"],
  "limitations": ["limitation1", "limitation2"],

  "modality": "imaging modality (CT/MRI/X-ray/Chest X-ray/Histopathology/Dermoscopy/ECG/Echocardiography/Ultrasound/Fundus/OCT/PET/PET-CT/Mammography/Endoscopy/Colonoscopy/etc.)",
  "bodyPart": "body part examined (e.g., chest, brain, heart, skin, eye, colon)",
  "targetCondition": "primary condition being detected/analyzed",
  "secondaryConditions": ["other conditions analyzed if any"]
}}

IMPORTANT:
- Extract ALL metrics mentioned in the abstract
- For AUC, use decimal format (0.96 not 96%)
- For accuracy/sensitivity/specificity, use percentage (96.5 not 0.965)
- Return ONLY the JSON object, no markdown code blocks or explanations"""

# Results field -> Metrics field.
_RESULT_METRIC_FIELDS: tuple[tuple[str, str], ...] = (
    ("sensitivity", "sensitivity"),
    ("specificity", "specificity"),
    ("accuracy", "accuracy"),
    ("auc", "auc"),
    ("f1_score", "f1_score"),
    ("ppv", "ppv"),
    ("npv", "npv"),
)


class ValidationSummary(NamedTuple):
    validation_type: str | None
    external_validation: bool
    external_sites: str | None


def build_extraction_prompt(record: Record) -> str:
    return EXTRACTION_PROMPT.format(
        name=normalize(record.title),
        description=normalize(record.abstract_text),
    )


def strip_code_fences(text: str) -> str:
    """Remove a leading ```json / ``` marker and a trailing ``` marker."""
    value = (text or "").strip()
    if value.startswith("```json"):
        value = value[len("```json"):]
    elif value.startswith("```"):
        value = value[3:]
    if value.endswith("```"):
        value = value[:-3]
    return value.strip()


def parse_metadata(text: str) -> StructuredMetadata:
    """Parse a model response into StructuredMetadata.

    Raises:
        MetadataValidationError: invalid JSON, a non-object payload, or a
            payload that does not fit the schema.
    """
    payload = strip_code_fences(text)
    try:
        data = json.loads(payload)
    except JSONDecodeError as exc:
        raise MetadataValidationError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MetadataValidationError(
            f"Expected a JSON object, got {type(data).__name__}"
        )
    try:
        return StructuredMetadata.model_validate(data)
    except ValidationError as exc:
        raise MetadataValidationError(f"Metadata failed schema validation: {exc}") from exc


def extract_metadata(
    record: Record,
    *,
    client: CompletionClient,
    model: str | None = None,
    max_tokens: int = DEFAULT_MAX_TOKENS,
) -> StructuredMetadata | None:
    """Request structured metadata for one record.

    Returns None for soft failures (empty response, bad JSON, schema
    mismatch) so a long batch loop can count the failure and move on.
    Authentication and transient API errors propagate to the driver.
    """
    try:
        completion = client.complete(
            build_extraction_prompt(record),
            max_tokens=max_tokens,
            model=model,
        )
    except LLMResponseError as exc:
        LOGGER.warning("Empty metadata response for %s: %s", record.identifier, exc)
        return None

    try:
        return parse_metadata(completion.text)
    except MetadataValidationError as exc:
        LOGGER.warning("Could not parse metadata for %s: %s", record.identifier, exc)
        return None


def coerce_number(value: Any) -> float | None:
    """Best-effort float from a number, numeric string, or container of numbers.

    For an object (or list) of several reported values the maximum is taken
    as representative.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value.strip())
        if match is None:
            return None
        number = float(match.group())
        return number if math.isfinite(number) else None
    if isinstance(value, dict):
        value = list(value.values())
    if isinstance(value, list):
        numbers = [
            float(v)
            for v in value
            if isinstance(v, (int, float)) and not isinstance(v, bool) and math.isfinite(v)
        ]
        return max(numbers) if numbers else None
    return None


def to_fraction(value: float | None) -> float | None:
    """Percentages (> 1) become fractions; anything still outside [0, 1] is dropped."""
    if value is None:
        return None
    if value > 1:
        value = value / 100
    if not 0.0 <= value <= 1.0:
        return None
    return round(value, 6)


def results_to_metrics(results: Results | None) -> Metrics:
    if results is None:
        return Metrics()
    values: dict[str, float | None] = {}
    for source_field, metric_field in _RESULT_METRIC_FIELDS:
        raw = getattr(results, source_field)
        fraction = to_fraction(coerce_number(raw))
        if raw is not None and fraction is None:
            LOGGER.debug("Dropping implausible %s value %r", source_field, raw)
        values[metric_field] = fraction
    return Metrics(**values)


def validation_summary(validation: Validation | None) -> ValidationSummary:
    if validation is None:
        return ValidationSummary(None, False, None)

    sites: str | None = None
    external = False
    if validation.external_dataset:
        external = True
        if isinstance(validation.external_dataset, list):
            sites = ", ".join(s for s in validation.external_dataset if s) or None
        else:
            sites = validation.external_dataset
    if validation.multi_center:
        external = True

    return ValidationSummary(
        validation_type=validation.type or None,
        external_validation=external,
        external_sites=sites,
    )
