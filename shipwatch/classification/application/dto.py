"""
Classification Application DTOs
================================

Schema of the model's JSON answer and the debug endpoint payloads.
"""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ========== Type Aliases for Literals ==========
ModelIssueTypeStr = Literal[
    "customs_hold", "delivery_failure", "final_mile_issue", "hub_delay",
    "transit_delay", "damage_or_loss", "eu_customs_complexity",
    "stuck_in_transit", "none"
]
SeverityStr = Literal["high", "medium", "low"]


class ModelAnalysis(BaseModel):
    """JSON object returned by the model for one update."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    has_issue: bool = Field(..., alias="hasIssue")
    issue_type: ModelIssueTypeStr = Field(default="none", alias="issueType")
    severity: SeverityStr = "medium"
    reason: str = ""
    location: Optional[str] = None
    is_resolved: bool = Field(default=False, alias="isResolved")
    carrier: Optional[str] = None
    route: Optional[str] = None

    @field_validator("issue_type", "severity", mode="before")
    @classmethod
    def normalize_case(cls, v):
        if isinstance(v, str):
            return v.strip().lower().replace("-", "_") if v.strip() else v
        return v


# ========== Request DTOs ==========

class ClassifyRequest(BaseModel):
    """Request model for the classification debug endpoint."""
    text: str = Field(..., min_length=1, description="Carrier update text")
    carrier_hint: Optional[str] = Field(None, description="UPS, DHL or FedEx")
    location_field: Optional[str] = Field(None, description="Value of the board location column")

    @field_validator("text")
    @classmethod
    def validate_text_length(cls, v: str) -> str:
        if len(v) > 5000:
            raise ValueError("Text too long (max 5000 characters)")
        return v


# ========== Response DTOs ==========

class IssueInfo(BaseModel):
    kind: str
    severity: Optional[str]
    reason: str
    carrier: str
    route: Optional[str]
    extracted_location: Optional[str]
    source: str
    matched_rule: Optional[str]


class ClassifyResponse(BaseModel):
    """Response model for the classification debug endpoint."""
    issue: IssueInfo
    location: str
    classifier: str
    processing_time_ms: int
