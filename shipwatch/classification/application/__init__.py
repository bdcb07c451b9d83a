"""
Classification Application Layer
=================================

Classifier strategies and DTOs.
"""

from shipwatch.classification.application.dto import (
    ClassifyRequest,
    ClassifyResponse,
    IssueInfo,
    ModelAnalysis,
)
from shipwatch.classification.application.services import (
    MODEL_ISSUE_KINDS,
    IIssueClassifier,
    ModelAssistedClassifier,
    RuleBasedClassifier,
    build_classifier,
    parse_model_response,
)

__all__ = [
    "ClassifyRequest",
    "ClassifyResponse",
    "IssueInfo",
    "ModelAnalysis",
    "MODEL_ISSUE_KINDS",
    "IIssueClassifier",
    "ModelAssistedClassifier",
    "RuleBasedClassifier",
    "build_classifier",
    "parse_model_response",
]
