"""
Classification Controllers (API Routes)
========================================

Debug route that runs the configured classifier on an arbitrary text.
"""

import time

from fastapi import APIRouter, Depends, Request

from shipwatch.classification.application import (
    ClassifyRequest,
    ClassifyResponse,
    IIssueClassifier,
    IssueInfo,
)
from shipwatch.classification.domain import LocationResolver
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/debug", tags=["Debug"])

CLASSIFY_REQUEST_EXAMPLE = {
    "text": "UPS: Held by customs - import duties required",
    "carrier_hint": None,
    "location_field": None
}


# ========== Dependencies ==========

def get_classifier(request: Request) -> IIssueClassifier:
    """Classifier owned by the running monitor."""
    return request.app.state.monitor.classifier


# ========== Routes ==========

@router.post(
    "/classify",
    response_model=ClassifyResponse,
    summary="Classify an update text",
    description="Runs the configured classifier and location resolver without touching any state.",
    openapi_extra={"requestBody": {"content": {"application/json": {"example": CLASSIFY_REQUEST_EXAMPLE}}}}
)
async def classify_update(
    payload: ClassifyRequest,
    classifier: IIssueClassifier = Depends(get_classifier)
) -> ClassifyResponse:
    start_time = time.perf_counter()

    issue = await classifier.classify(
        payload.text,
        carrier_hint=payload.carrier_hint,
        context={"location": payload.location_field}
    )
    location = LocationResolver("location").resolve(
        {"location": payload.location_field},
        update_text=payload.text,
        model_location=issue.extracted_location
    )

    logger.info(
        "Debug classification",
        extra={"kind": issue.kind.value, "classifier": classifier.name}
    )

    return ClassifyResponse(
        issue=IssueInfo(**issue.to_dict()),
        location=location,
        classifier=classifier.name,
        processing_time_ms=int((time.perf_counter() - start_time) * 1000)
    )
