"""
Classification Domain Entities
==============================

The Issue produced by every classifier and tracker, and the prompt
builder for the model-assisted variant.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Mapping, Optional

from shipwatch.config import (
    CARRIER_ROUTES, ISSUE_PHRASES,
    Carrier, IssueKind, IssueSource, Severity
)


@dataclass(frozen=True)
class Issue:
    """
    Result of classifying one carrier update.

    ``kind == IssueKind.NONE`` means "nothing to alert"; every other kind
    must carry a severity and a reason.
    """
    kind: IssueKind
    severity: Optional[Severity]
    reason: str
    carrier: Carrier = Carrier.UNKNOWN
    route: Optional[str] = None
    extracted_location: Optional[str] = None
    source: IssueSource = IssueSource.RULES
    matched_rule: Optional[str] = None
    detected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self):
        if self.kind != IssueKind.NONE:
            if self.severity is None:
                raise ValueError(f"Issue {self.kind.value} requires a severity")
            if not self.reason:
                raise ValueError(f"Issue {self.kind.value} requires a reason")

    @classmethod
    def none(
        cls,
        carrier: Carrier = Carrier.UNKNOWN,
        reason: str = "No issue detected",
        source: IssueSource = IssueSource.RULES,
        matched_rule: Optional[str] = None
    ) -> "Issue":
        return cls(
            kind=IssueKind.NONE,
            severity=None,
            reason=reason,
            carrier=carrier,
            source=source,
            matched_rule=matched_rule
        )

    @property
    def is_alertable(self) -> bool:
        return self.kind != IssueKind.NONE

    @property
    def phrase(self) -> str:
        """Wording used in alert summaries."""
        return ISSUE_PHRASES[self.kind]

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "kind": self.kind.value,
            "severity": self.severity.value if self.severity else None,
            "reason": self.reason,
            "carrier": self.carrier.value,
            "route": self.route,
            "extracted_location": self.extracted_location,
            "source": self.source.value,
            "matched_rule": self.matched_rule,
        }


def route_for(carrier: Carrier) -> Optional[str]:
    """Default shipping lane for a carrier, None when unknown."""
    return CARRIER_ROUTES.get(carrier)


class UpdateAnalysisPromptBuilder:
    """Builds prompts for model-assisted update analysis."""

    SYSTEM_PROMPT = """You analyse shipping and logistics tracking updates for an operations team.

Decide whether the update indicates a problem that requires human attention.

ISSUE TYPES:
- customs_hold: held by customs, documents or duties required
- delivery_failure: failed delivery attempt, recipient unavailable, refused, address problems
- final_mile_issue: problem with the local or last-mile delivery partner
- hub_delay: delay or exception at a carrier hub
- transit_delay: weather, operational or transport delays
- damage_or_loss: damaged, lost, missing or under investigation
- eu_customs_complexity: VAT, EORI, IOSS, commodity codes, cross-border declarations
- stuck_in_transit: no meaningful progress while in transit
- none: normal progress (picked up, departed, arrived, out for delivery, delivered)

Respond ONLY with JSON:
{
    "hasIssue": true,
    "issueType": "customs_hold",
    "severity": "high",
    "reason": "brief explanation",
    "location": "current location if mentioned, otherwise null",
    "isResolved": false,
    "carrier": "UPS | DHL | FedEx | unknown",
    "route": "origin-destination lane if known, otherwise null"
}"""

    @classmethod
    def build_prompt(cls, update_text: str, context: Mapping[str, Optional[str]]) -> str:
        """Build the user prompt from the update and selected board fields."""
        lines = [f'UPDATE: "{update_text}"']
        for label, value in context.items():
            lines.append(f"{label.upper()}: {value or 'Unknown'}")
        lines.append("")
        lines.append("Analyse this update (respond with JSON only):")
        return "\n".join(lines)

    @classmethod
    def get_system_prompt(cls) -> str:
        return cls.SYSTEM_PROMPT
