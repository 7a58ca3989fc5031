"""Keyword/MeSH-term specialty classification."""

from __future__ import annotations

from typing import NamedTuple

OTHER_SPECIALTY = "other"


class SpecialtyRule(NamedTuple):
    name: str
    slug: str
    mesh_terms: tuple[str, ...]
    additional_terms: tuple[str, ...]

    def terms(self) -> tuple[str, ...]:
        return tuple(t.lower() for t in self.mesh_terms + self.additional_terms)

    def pubmed_query(self) -> str:
        """PubMed search expression: specialty terms AND AI terms AND task terms, no reviews."""
        mesh = " OR ".join(f"{t}[Title/Abstract]" for t in self.mesh_terms)
        return f"({mesh}) AND {_AI_TERMS} AND {_TASK_TERMS} {_EXCLUDED_PUBLICATION_TYPES}"


_AI_TERMS = (
    "(deep learning[Title/Abstract] OR neural network[Title/Abstract] OR "
    "machine learning[Title/Abstract] OR artificial intelligence[Title/Abstract] OR "
    "convolutional[Title/Abstract])"
)
_TASK_TERMS = (
    "(detection[Title/Abstract] OR classification[Title/Abstract] OR "
    "prediction[Title/Abstract] OR diagnosis[Title/Abstract] OR "
    "segmentation[Title/Abstract])"
)
_EXCLUDED_PUBLICATION_TYPES = (
    "NOT review[Publication Type] NOT meta-analysis[Publication Type] "
    "NOT systematic review[Publication Type] NOT editorial[Publication Type] "
    "NOT comment[Publication Type] NOT letter[Publication Type]"
)

# Order is the tie-break: text mentioning both "cardiac" and "chest" is
# Cardiology, "chest x-ray" with "pneumonia" is Radiology.
SPECIALTY_RULES: tuple[SpecialtyRule, ...] = (
    SpecialtyRule(
        "Cardiology",
        "cardiology",
        ("cardiology", "cardiovascular", "heart", "cardiac", "echocardiography",
         "electrocardiography", "ECG", "arrhythmia", "atrial fibrillation", "myocardial"),
        ("coronary", "ventricular", "aortic", "mitral", "valve"),
    ),
    SpecialtyRule(
        "Radiology",
        "radiology",
        ("radiology", "radiography", "computed tomography", "CT scan", "MRI",
         "magnetic resonance", "X-ray", "ultrasound imaging"),
        ("imaging", "radiograph", "chest x-ray", "mammography"),
    ),
    SpecialtyRule(
        "Neurology",
        "neurology",
        ("neurology", "brain", "neurological", "stroke", "epilepsy", "seizure",
         "alzheimer", "parkinson", "EEG", "electroencephalography"),
        ("cerebral", "cognitive", "dementia", "multiple sclerosis"),
    ),
    SpecialtyRule(
        "Ophthalmology",
        "ophthalmology",
        ("ophthalmology", "retina", "retinal", "diabetic retinopathy", "glaucoma",
         "macular degeneration", "fundus", "OCT"),
        ("eye", "optic", "vision", "cataract"),
    ),
    SpecialtyRule(
        "Oncology",
        "oncology",
        ("oncology", "cancer", "tumor", "neoplasm", "carcinoma", "malignant",
         "metastasis", "lymphoma", "leukemia"),
        ("chemotherapy", "radiotherapy", "survival prediction", "prognosis"),
    ),
    SpecialtyRule(
        "Pathology",
        "pathology",
        ("pathology", "histopathology", "histology", "biopsy", "cytology",
         "microscopy", "whole slide image", "WSI"),
        ("tissue", "cell", "specimen", "staining"),
    ),
    SpecialtyRule(
        "Gastroenterology",
        "gastroenterology",
        ("gastroenterology", "endoscopy", "colonoscopy", "gastrointestinal", "liver",
         "hepatic", "colon polyp"),
        ("stomach", "intestinal", "digestive", "colorectal"),
    ),
    SpecialtyRule(
        "Pulmonology",
        "pulmonology",
        ("pulmonology", "lung", "pulmonary", "respiratory", "pneumonia", "COPD",
         "asthma", "COVID-19", "tuberculosis"),
        ("chest", "bronchial", "airway"),
    ),
)

SPECIALTY_NAMES: tuple[str, ...] = tuple(rule.name for rule in SPECIALTY_RULES)


def classify_specialty(title: str, abstract_text: str) -> str:
    """Return the first specialty with any term in the text, else "other"."""
    text = f"{title or ''} {abstract_text or ''}".lower()
    for rule in SPECIALTY_RULES:
        if any(term in text for term in rule.terms()):
            return rule.name
    return OTHER_SPECIALTY


def rule_for_slug(slug: str) -> SpecialtyRule | None:
    for rule in SPECIALTY_RULES:
        if rule.slug == slug.lower():
            return rule
    return None
