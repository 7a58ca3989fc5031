import pytest

from architecture import ARCHITECTURE_NAMES, ARCHITECTURE_RULES, extract_architecture


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("A ResNet-50 backbone pretrained on ImageNet", "ResNet-50"),
        ("we fine-tuned resnet101 on chest films", "ResNet-101"),
        ("a residual network (ResNet) with 3 stages", "ResNet"),
        ("Inception-ResNet-v2 outperformed ResNet-50", "Inception-ResNet-v2"),
        ("DenseNet121 classifier", "DenseNet-121"),
        ("VGG 16 features", "VGG-16"),
        ("a UNet++ segmentation model", "U-Net++"),
        ("3D U-Net for liver segmentation", "U-Net"),
        ("YOLOv5 detector for polyps", "YOLO"),
        ("ClinicalBERT embeddings of notes", "BERT"),
        ("BioClinicalBERT note classifier", "BERT"),
        ("SapBERT entity linking", "BERT"),
        ("CamemBERT on French clinical reports", "BERT"),
        ("PubMedBERT abstracts", "BERT"),
        ("emilyalsentzer/bioclinicalbert fine-tune", "BERT"),
        ("a BERT-based extractor", "BERT"),
        ("Swin Transformer with shifted windows", "Swin Transformer"),
        ("a ViT-B/16 encoder", "Vision Transformer"),
        ("an encoder-only transformer", "Transformer"),
        ("random forest on tabular features", "Random Forest"),
        ("a conditional GAN for synthesis", "GAN"),
        ("a convolutional neural network", "CNN"),
    ],
)
def test_extract_architecture(text: str, expected: str) -> None:
    assert extract_architecture(text) == expected


def test_specific_variant_beats_family_and_generic_class() -> None:
    text = "Our CNN uses a ResNet-50 backbone."
    assert extract_architecture(text) == "ResNet-50"


def test_resnet_variant_does_not_match_longer_number() -> None:
    assert extract_architecture("ResNet-500 is not a standard depth") == "ResNet"


def test_lowercase_vit_is_not_vision_transformer() -> None:
    assert extract_architecture("serum vit D levels and bone density") is None


def test_common_words_do_not_trigger_short_patterns() -> None:
    assert extract_architecture("organ segmentation raised an exception in the pipeline") is None


def test_no_architecture_returns_none() -> None:
    assert extract_architecture("Logistic regression on claims data") is None
    assert extract_architecture("") is None


def test_rule_table_is_ordered_and_names_are_known() -> None:
    names = [rule.name for rule in ARCHITECTURE_RULES]
    assert names.index("ResNet-50") < names.index("ResNet") < names.index("CNN")
    assert names.index("Swin Transformer") < names.index("Vision Transformer") < names.index("Transformer")
    assert set(names) == ARCHITECTURE_NAMES


def test_names_ending_in_bert_are_not_bert() -> None:
    assert extract_architecture("Lambert-Eaton syndrome cohort at Albert Einstein College") is None
