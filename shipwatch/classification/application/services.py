"""
Classification Application Services
====================================

Classifier strategies behind one interface.

``RuleBasedClassifier`` runs the deterministic rule table.
``ModelAssistedClassifier`` asks the LLM first and falls back to the rule
table on any ``ModelAnalysisError``, so callers always get an ``Issue``.
"""

import json
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional

from pydantic import ValidationError

from shipwatch.classification.application.dto import ModelAnalysis
from shipwatch.classification.domain import (
    Issue,
    UpdateAnalysisPromptBuilder,
    classify_text,
    detect_carrier,
    is_terminal_success,
    parse_carrier,
    route_for,
)
from shipwatch.config import Carrier, IssueKind, IssueSource, Settings, Severity
from shipwatch.core import ModelAnalysisError
from shipwatch.infrastructure.llm import ILLMClient
from shipwatch.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

MODEL_ISSUE_KINDS: Dict[str, IssueKind] = {
    "customs_hold": IssueKind.HELD_IN_CUSTOMS,
    "delivery_failure": IssueKind.DELIVERY_FAILURE,
    "final_mile_issue": IssueKind.FINAL_MILE_ISSUE,
    "hub_delay": IssueKind.HUB_DELAY,
    "transit_delay": IssueKind.TRANSIT_DELAY,
    "damage_or_loss": IssueKind.DAMAGE_OR_LOSS,
    "eu_customs_complexity": IssueKind.EU_CUSTOMS_COMPLEXITY,
    "stuck_in_transit": IssueKind.STUCK_IN_TRANSIT,
    "none": IssueKind.NONE,
}


# ========== Classifier Interface ==========

class IIssueClassifier(ABC):
    """Interface for update text classification."""

    name: str = "abstract"

    @abstractmethod
    async def classify(
        self,
        update_text: str,
        carrier_hint: Optional[str] = None,
        context: Optional[Mapping[str, Optional[str]]] = None
    ) -> Issue:
        """Classify one carrier update."""


class RuleBasedClassifier(IIssueClassifier):
    """Deterministic classifier backed by the ordered rule table."""

    name = "rules"

    async def classify(
        self,
        update_text: str,
        carrier_hint: Optional[str] = None,
        context: Optional[Mapping[str, Optional[str]]] = None
    ) -> Issue:
        return classify_text(update_text, carrier_hint)


def parse_model_response(content: str) -> ModelAnalysis:
    """
    Parse the model's answer into a ``ModelAnalysis``.

    Markdown code fences are stripped. Anything that is not a JSON object
    matching the schema raises ``ModelAnalysisError``.
    """
    content_text = (content or "").strip()
    if "```json" in content_text:
        content_text = content_text.split("```json")[1].split("```")[0].strip()
    elif "```" in content_text:
        content_text = content_text.split("```")[1].split("```")[0].strip()

    try:
        data = json.loads(content_text)
    except json.JSONDecodeError as e:
        raise ModelAnalysisError(f"Model response is not JSON: {e}", raw_response=content)

    if not isinstance(data, dict):
        raise ModelAnalysisError("Model response is not a JSON object", raw_response=content)

    try:
        return ModelAnalysis.model_validate(data)
    except ValidationError as e:
        raise ModelAnalysisError(
            f"Model response does not match schema: {e.error_count()} error(s)",
            raw_response=content
        )


class ModelAssistedClassifier(IIssueClassifier):
    """
    LLM-backed classifier with transparent fallback.

    Terminal-success texts never reach the model. Missing JSON, schema
    mismatches and client failures all surface as ``ModelAnalysisError``
    inside ``analyze`` and are answered by the fallback classifier.
    """

    name = "model"

    def __init__(
        self,
        llm_client: ILLMClient,
        fallback: Optional[IIssueClassifier] = None,
        temperature: float = 0.1,
        max_tokens: int = 400
    ):
        self._llm = llm_client
        self._fallback = fallback or RuleBasedClassifier()
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def analyze(
        self,
        update_text: str,
        carrier: Carrier,
        context: Optional[Mapping[str, Optional[str]]] = None
    ) -> ModelAnalysis:
        prompt_context = {"carrier": carrier.value}
        prompt_context.update(context or {})

        messages: List[dict] = [
            {"role": "system", "content": UpdateAnalysisPromptBuilder.get_system_prompt()},
            {"role": "user", "content": UpdateAnalysisPromptBuilder.build_prompt(update_text, prompt_context)},
        ]

        try:
            response = await self._llm.chat_completion(
                messages=messages,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
                operation="update_analysis"
            )
        except Exception as e:
            raise ModelAnalysisError(f"Model call failed: {e}") from e

        return parse_model_response(response.content)

    async def classify(
        self,
        update_text: str,
        carrier_hint: Optional[str] = None,
        context: Optional[Mapping[str, Optional[str]]] = None
    ) -> Issue:
        carrier = detect_carrier(update_text, carrier_hint)

        if is_terminal_success(update_text):
            return Issue.none(
                carrier=carrier,
                reason="Shipment delivered",
                matched_rule="delivered"
            )

        try:
            analysis = await self.analyze(update_text, carrier, context)
        except ModelAnalysisError as e:
            logger.warning(
                "Model analysis failed, falling back to rules",
                extra={"error": e.message, "details": e.details}
            )
            return await self._fallback.classify(update_text, carrier_hint, context)

        return self._to_issue(analysis, carrier)

    @staticmethod
    def _to_issue(analysis: ModelAnalysis, carrier: Carrier) -> Issue:
        if carrier == Carrier.UNKNOWN:
            carrier = parse_carrier(analysis.carrier)

        kind = MODEL_ISSUE_KINDS[analysis.issue_type]
        if not analysis.has_issue or analysis.is_resolved or kind == IssueKind.NONE:
            return Issue.none(
                carrier=carrier,
                reason=analysis.reason or "No issue detected",
                source=IssueSource.MODEL
            )

        location = analysis.location
        if location and location.strip().lower() in ("null", "none", "unknown"):
            location = None

        return Issue(
            kind=kind,
            severity=Severity(analysis.severity),
            reason=analysis.reason or f"Model reported {analysis.issue_type}",
            carrier=carrier,
            route=analysis.route or route_for(carrier),
            extracted_location=location,
            source=IssueSource.MODEL
        )


def build_classifier(llm_client: Optional[ILLMClient], config: Settings) -> IIssueClassifier:
    """Pick the model-assisted classifier when an LLM client is available."""
    if llm_client is None:
        logger.info("Using rule-based classifier")
        return RuleBasedClassifier()

    logger.info("Using model-assisted classifier", extra={"provider": config.llm_provider})
    return ModelAssistedClassifier(
        llm_client,
        fallback=RuleBasedClassifier(),
        temperature=config.llm_temperature,
        max_tokens=config.llm_max_tokens
    )
