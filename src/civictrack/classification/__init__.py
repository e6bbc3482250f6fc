"""Category suggestion for uncategorised reports."""

from civictrack.classification.classifier import (
    UNKNOWN,
    Classifier,
    KeywordClassifier,
    LLMClassifier,
    create_classifier,
    match_category,
)

__all__ = [
    "UNKNOWN",
    "Classifier",
    "KeywordClassifier",
    "LLMClassifier",
    "create_classifier",
    "match_category",
]
