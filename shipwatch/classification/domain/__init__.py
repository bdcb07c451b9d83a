"""
Classification Domain Layer
============================

Issue entity, ordered rule table and location resolution.
"""

from shipwatch.classification.domain.entities import (
    Issue,
    UpdateAnalysisPromptBuilder,
    route_for,
)
from shipwatch.classification.domain.location import (
    COUNTRY_NAMES,
    LocationResolver,
    extract_location,
)
from shipwatch.classification.domain.rules import (
    RULES,
    ClassificationRule,
    classify_text,
    detect_carrier,
    is_terminal_success,
    parse_carrier,
)

__all__ = [
    "Issue",
    "UpdateAnalysisPromptBuilder",
    "route_for",
    "COUNTRY_NAMES",
    "LocationResolver",
    "extract_location",
    "RULES",
    "ClassificationRule",
    "classify_text",
    "detect_carrier",
    "is_terminal_success",
    "parse_carrier",
]
