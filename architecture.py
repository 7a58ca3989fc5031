"""Heuristic model-architecture extraction from free text."""

from __future__ import annotations

import re
from typing import NamedTuple


class ArchitectureRule(NamedTuple):
    pattern: re.Pattern[str]
    name: str


def _rule(pattern: str, name: str, flags: int = re.IGNORECASE) -> ArchitectureRule:
    return ArchitectureRule(re.compile(pattern, flags), name)


# Evaluated top to bottom; the first rule that matches anywhere in the text
# wins. Variants must sit above their family name, and family names above
# generic classes (ResNet-50 > ResNet > CNN).
ARCHITECTURE_RULES: tuple[ArchitectureRule, ...] = (
    _rule(r"inception[-\s]?resnet[-\s]?v2", "Inception-ResNet-v2"),
    _rule(r"inception[-\s]?v3", "Inception-v3"),
    _rule(r"resnet[-\s]?152(?!\d)", "ResNet-152"),
    _rule(r"resnet[-\s]?101(?!\d)", "ResNet-101"),
    _rule(r"resnet[-\s]?50(?!\d)", "ResNet-50"),
    _rule(r"resnet[-\s]?34(?!\d)", "ResNet-34"),
    _rule(r"resnet[-\s]?18(?!\d)", "ResNet-18"),
    _rule(r"resnet", "ResNet"),
    _rule(r"\bxception", "Xception"),
    _rule(r"densenet[-\s]?201(?!\d)", "DenseNet-201"),
    _rule(r"densenet[-\s]?169(?!\d)", "DenseNet-169"),
    _rule(r"densenet[-\s]?121(?!\d)", "DenseNet-121"),
    _rule(r"densenet", "DenseNet"),
    _rule(r"\bvgg[-\s]?19(?!\d)", "VGG-19"),
    _rule(r"\bvgg[-\s]?16(?!\d)", "VGG-16"),
    _rule(r"\bvgg", "VGG"),
    _rule(r"alexnet", "AlexNet"),
    _rule(r"mobilenet[-\s]?v3", "MobileNet-v3"),
    _rule(r"mobilenet[-\s]?v2", "MobileNet-v2"),
    _rule(r"mobilenet", "MobileNet"),
    _rule(r"efficientnet", "EfficientNet"),
    _rule(r"\bu[-\s]?net\s?\+\+", "U-Net++"),
    _rule(r"\bu[-\s]?net\b", "U-Net"),
    _rule(r"faster[-\s]?r[-\s]?cnn", "Faster R-CNN"),
    _rule(r"mask[-\s]?r[-\s]?cnn", "Mask R-CNN"),
    _rule(r"\byolo", "YOLO"),
    _rule(r"lstm", "LSTM"),
    _rule(r"\bgru\b", "GRU"),
    _rule(r"\b(?:bio|clinical|pubmed|sci|blue|med|distil|sap|camem)*bert\b|\broberta\b", "BERT"),
    # Case-sensitive: any "...BERT" compound, without matching Albert or Lambert.
    _rule(r"\b\w*BERT\b", "BERT", flags=0),
    _rule(r"swin[-\s]?transformer", "Swin Transformer"),
    _rule(r"vision[-\s]?transformer", "Vision Transformer"),
    # Case-sensitive: lower-case "vit" collides with vitamin abbreviations.
    _rule(r"\bViT\b", "Vision Transformer", flags=0),
    _rule(r"transformer", "Transformer"),
    _rule(r"attention[-\s]?mechanism|self[-\s]?attention", "Attention Network"),
    _rule(r"random[-\s]?forest", "Random Forest"),
    _rule(r"xgboost", "XGBoost"),
    _rule(r"lightgbm", "LightGBM"),
    _rule(r"gradient[-\s]?boost", "Gradient Boosting"),
    _rule(r"ensemble", "Ensemble"),
    _rule(r"autoencoder", "Autoencoder"),
    _rule(r"\bgans?\b|generative[-\s]?adversarial", "GAN"),
    _rule(r"convolutional[-\s]?neural[-\s]?network|\bcnns?\b", "CNN"),
    _rule(r"\bdnns?\b", "DNN"),
    _rule(r"\brnns?\b|recurrent[-\s]?neural", "RNN"),
    _rule(r"fully[-\s]?connected", "FCN"),
    _rule(r"segnet", "SegNet"),
)

ARCHITECTURE_NAMES: frozenset[str] = frozenset(rule.name for rule in ARCHITECTURE_RULES)


def extract_architecture(text: str) -> str | None:
    """Return the canonical name of the first matching rule, or None."""
    if not text:
        return None
    for rule in ARCHITECTURE_RULES:
        if rule.pattern.search(text):
            return rule.name
    return None
