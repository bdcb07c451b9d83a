"""
Classification Rules
====================

Deterministic classification of carrier update text.

``RULES`` is evaluated top to bottom and the first match wins. The order
is part of the contract: terminal and resolved states are checked before
the active problems that share their vocabulary ("customs" appears in both
"released by customs" and "held by customs"), and specific problems before
generic fallbacks.
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Pattern, Tuple, Union

from shipwatch.classification.domain.entities import Issue, route_for
from shipwatch.config import Carrier, IssueKind, Severity

Matcher = Callable[[str, Carrier], Optional[str]]


def _phrases(*patterns: str) -> Pattern:
    """Compile regex fragments into one case-insensitive alternation anchored at a word start."""
    return re.compile(r"\b(?:" + "|".join(patterns) + ")", re.IGNORECASE)


def _search(pattern: Optional[Pattern], text: str) -> Optional[str]:
    if pattern is None:
        return None
    match = pattern.search(text)
    return match.group(0).lower() if match else None


# ========== Phrase sets ==========

DELIVERED = _phrases(
    r"(?<!not )(?<!n't )(?<!not be )(?<!n't be )(?<!to be )(?<!will be )(?<!should be )delivered\b",
    r"delivery completed",
    r"signed for by",
    r"proof of delivery",
)

CARRIER_TOKENS: Tuple[Tuple[Carrier, Pattern], ...] = (
    (Carrier.UPS, re.compile(r"\bups\b", re.IGNORECASE)),
    (Carrier.DHL, re.compile(r"\bdhl\b", re.IGNORECASE)),
    (Carrier.FEDEX, re.compile(r"\bfed\s?ex\b", re.IGNORECASE)),
)

# Any of these disqualifies a "normal operation" match.
ALARM_WORDS = _phrases(
    r"delay", r"exception", r"hold\b", r"held\b", r"fail", r"unable",
    r"damage", r"lost\b", r"refused", r"missed", r"customs", r"closed",
    r"incorrect", r"insufficient", r"unavailable", r"not available", r"attempt",
)

NORMAL_OPERATION: Dict[Carrier, Pattern] = {
    Carrier.UPS: _phrases(
        r"origin scan", r"departed from facility", r"arrived at facility",
        r"out for delivery", r"loaded on delivery vehicle", r"shipper created a label",
        r"label created", r"we have your package", r"on the way",
        r"processing at ups facility",
    ),
    Carrier.DHL: _phrases(
        r"shipment picked up", r"processed at", r"departed facility in",
        r"arrived at (?:dhl )?(?:sort |delivery )?facility", r"transferred through",
        r"forwarded for delivery", r"with delivery courier",
        r"shipment is in transit to destination",
    ),
    Carrier.FEDEX: _phrases(
        r"picked up", r"left fedex origin facility", r"arrived at fedex location",
        r"departed fedex location", r"at local fedex facility",
        r"on fedex vehicle for delivery", r"shipment information sent to fedex",
    ),
}

CUSTOMS_RESOLVED_GENERIC = _phrases(
    r"customs clearance (?:is )?complete", r"clearance (?:processing )?complete",
    r"cleared (?:by )?customs", r"customs cleared", r"released (?:by|from) customs",
    r"import (?:customs )?cleared",
)

CUSTOMS_RESOLVED: Dict[Carrier, Pattern] = {
    Carrier.UPS: _phrases(r"your package has cleared", r"brokerage (?:complete|released)"),
    Carrier.DHL: _phrases(
        r"customs status updated.{0,20}released", r"shipment has been released",
    ),
    Carrier.FEDEX: _phrases(
        r"international shipment release", r"clearance delay.{0,15}resolved",
        r"released by (?:the )?government agency",
    ),
}

CUSTOMS_ACTIVE_GENERIC = _phrases(
    r"held (?:by|in|at) customs", r"customs hold", r"customs examination",
    r"customs inspection", r"documents? required", r"clearance required",
    r"(?:import )?dut(?:y|ies)(?: and taxes)? (?:required|due|payable)",
    r"awaiting (?:customs )?clearance", r"held for (?:payment|duties)",
)

CUSTOMS_ACTIVE: Dict[Carrier, Pattern] = {
    Carrier.UPS: _phrases(
        r"brokerage (?:hold|delay)",
        r"awaiting (?:information|documentation) (?:from|for) (?:the )?(?:receiver|importer|brokerage)",
    ),
    Carrier.DHL: _phrases(
        r"further clearance processing is required", r"awaiting payment of (?:duties|customs)",
        r"clearance delay",
    ),
    Carrier.FEDEX: _phrases(
        r"clearance delay", r"held by (?:a )?government agency",
        r"import documentation required", r"regulatory agency clearance delay",
    ),
}

DELIVERY_FAILURE = _phrases(
    r"delivery attempted", r"attempted delivery", r"delivery attempt",
    r"recipient unavailable", r"consignee (?:unavailable|not available)",
    r"customer not available", r"no one (?:available|home)",
    r"(?:consignee )?premises closed", r"business closed", r"office closed",
    r"address (?:incorrect|insufficient|invalid)", r"(?:incorrect|invalid|insufficient) address",
    r"refused", r"unable to deliver", r"could not be delivered", r"not delivered",
    r"undeliverable", r"delivery exception", r"delivery failed", r"failed delivery",
    r"no answer", r"not answering", r"no response at consignee",
)

LAST_MILE_PARTNERS = _phrases(
    r"royal mail", r"parcelforce", r"dpd\b", r"evri\b", r"hermes\b", r"yodel\b",
    r"dx\b", r"usps\b", r"la poste", r"delivery partner",
    r"local (?:delivery )?(?:agent|partner|courier)", r"final[- ]mile", r"last[- ]mile",
)

TROUBLE_WORDS = _phrases(
    r"delay", r"exception", r"problem", r"issue", r"held\b", r"hold\b",
    r"missed", r"fail", r"unable",
)

KNOWN_HUBS = _phrases(
    r"leipzig", r"east midlands", r"cologne", r"k[oö]ln", r"louisville", r"worldport",
    r"memphis", r"indianapolis", r"cincinnati", r"hong kong", r"brussels", r"li[eè]ge",
    r"heathrow", r"stansted", r"frankfurt", r"paris", r"shanghai", r"shenzhen",
    r"guangzhou", r"delhi", r"mumbai", r"dubai", r"hub\b", r"gateway",
)

TRANSIT_DELAY = _phrases(
    r"delay", r"weather", r"natural disaster", r"mechanical (?:failure|issue|problem)",
    r"facility issue", r"missed (?:connection|flight)", r"missent", r"mis-?sorted",
    r"flight (?:cancel|delay)", r"late (?:arrival|flight|trailer)",
    r"operational (?:issue|delay|reasons)", r"congestion", r"strike\b", r"rescheduled",
    r"exception", r"on hold", r"beyond our control",
)

DAMAGE_OR_LOSS = _phrases(
    r"damaged?\b", r"lost\b", r"missing", r"investigation", r"trace (?:initiated|requested)",
    r"tracer\b", r"destroyed", r"claim\b",
)

EU_CUSTOMS_COMPLEXITY = _phrases(
    r"vat\b", r"eori", r"ioss", r"hs code", r"commodity code", r"tariff code",
    r"duty code", r"cn2[23]\b", r"cross[- ]border", r"customs declaration",
    r"import declaration", r"export declaration", r"brexit", r"t1 document",
    r"incoterms?\b", r"ddp\b", r"dap\b", r"commercial invoice",
)


# ========== Matchers ==========

def _match(pattern: Pattern) -> Matcher:
    return lambda text, carrier: _search(pattern, text)


def _per_carrier(table: Dict[Carrier, Pattern], generic: Optional[Pattern] = None) -> Matcher:
    def matcher(text: str, carrier: Carrier) -> Optional[str]:
        return _search(table.get(carrier), text) or _search(generic, text)
    return matcher


def _unless(inner: Matcher, veto: Pattern) -> Matcher:
    def matcher(text: str, carrier: Carrier) -> Optional[str]:
        if _search(veto, text):
            return None
        return inner(text, carrier)
    return matcher


def _together(first: Pattern, second: Pattern) -> Matcher:
    def matcher(text: str, carrier: Carrier) -> Optional[str]:
        a = _search(first, text)
        b = _search(second, text) if a else None
        return f"{a} + {b}" if a and b else None
    return matcher


@dataclass(frozen=True)
class ClassificationRule:
    """One (predicate, issue template) pair of the rule table."""
    name: str
    kind: IssueKind
    severity: Optional[Severity]
    reason: str
    matcher: Matcher

    def apply(self, text: str, carrier: Carrier) -> Optional[Issue]:
        hit = self.matcher(text, carrier)
        if hit is None:
            return None

        reason = f"{self.reason} ('{hit}')"
        if self.kind == IssueKind.NONE:
            return Issue.none(carrier=carrier, reason=reason, matched_rule=self.name)
        return Issue(
            kind=self.kind,
            severity=self.severity,
            reason=reason,
            carrier=carrier,
            route=route_for(carrier),
            matched_rule=self.name
        )


RULES: Tuple[ClassificationRule, ...] = (
    ClassificationRule(
        "delivered", IssueKind.NONE, None,
        "Shipment delivered", _match(DELIVERED),
    ),
    ClassificationRule(
        "carrier_normal_operation", IssueKind.NONE, None,
        "Normal carrier progress", _unless(_per_carrier(NORMAL_OPERATION), ALARM_WORDS),
    ),
    ClassificationRule(
        "customs_resolved", IssueKind.NONE, None,
        "Customs clearance resolved", _per_carrier(CUSTOMS_RESOLVED, CUSTOMS_RESOLVED_GENERIC),
    ),
    ClassificationRule(
        "customs_active", IssueKind.HELD_IN_CUSTOMS, Severity.HIGH,
        "Customs hold detected", _per_carrier(CUSTOMS_ACTIVE, CUSTOMS_ACTIVE_GENERIC),
    ),
    ClassificationRule(
        "delivery_failure", IssueKind.DELIVERY_FAILURE, Severity.HIGH,
        "Failed delivery attempt detected", _match(DELIVERY_FAILURE),
    ),
    ClassificationRule(
        "final_mile_issue", IssueKind.FINAL_MILE_ISSUE, Severity.HIGH,
        "Last-mile partner reported a problem", _together(LAST_MILE_PARTNERS, TROUBLE_WORDS),
    ),
    ClassificationRule(
        "hub_delay", IssueKind.HUB_DELAY, Severity.MEDIUM,
        "Delay at carrier hub", _together(KNOWN_HUBS, TROUBLE_WORDS),
    ),
    ClassificationRule(
        "transit_delay", IssueKind.TRANSIT_DELAY, Severity.MEDIUM,
        "Transit delay detected", _match(TRANSIT_DELAY),
    ),
    ClassificationRule(
        "damage_or_loss", IssueKind.DAMAGE_OR_LOSS, Severity.HIGH,
        "Damage, loss or investigation reported", _match(DAMAGE_OR_LOSS),
    ),
    ClassificationRule(
        "eu_customs_complexity", IssueKind.EU_CUSTOMS_COMPLEXITY, Severity.MEDIUM,
        "Customs documentation requirement", _match(EU_CUSTOMS_COMPLEXITY),
    ),
)


def parse_carrier(value: Union[str, Carrier, None]) -> Carrier:
    """Map a free-form carrier name onto ``Carrier``."""
    if isinstance(value, Carrier):
        return value
    if not value:
        return Carrier.UNKNOWN
    normalized = value.strip().lower().replace(" ", "")
    for carrier in Carrier:
        if carrier.value.lower() == normalized:
            return carrier
    return Carrier.UNKNOWN


def detect_carrier(text: str, carrier_hint: Union[str, Carrier, None] = None) -> Carrier:
    """Known hint first, then the first carrier token found in the text."""
    hinted = parse_carrier(carrier_hint)
    if hinted != Carrier.UNKNOWN:
        return hinted

    for carrier, pattern in CARRIER_TOKENS:
        if pattern.search(text or ""):
            return carrier
    return Carrier.UNKNOWN


def is_terminal_success(text: str) -> bool:
    return _search(DELIVERED, text or "") is not None


def classify_text(text: str, carrier_hint: Union[str, Carrier, None] = None) -> Issue:
    """Run the rule table against one update text."""
    text = text or ""
    carrier = detect_carrier(text, carrier_hint)

    for rule in RULES:
        issue = rule.apply(text, carrier)
        if issue is not None:
            return issue

    return Issue.none(carrier=carrier)
