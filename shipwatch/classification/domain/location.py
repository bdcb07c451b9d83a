"""
Location Resolution
===================

Picks the "current location" shown in alerts and e-mails.

Priority: the board's location field, then a location reported by the
model, then the last place mentioned in the update text, then
``UNKNOWN_LOCATION``.
"""

import re
from typing import List, Mapping, Optional, Tuple

from shipwatch.config import UNKNOWN_LOCATION

COUNTRY_NAMES = {
    "AE": "United Arab Emirates",
    "BE": "Belgium",
    "CA": "Canada",
    "CN": "China",
    "DE": "Germany",
    "ES": "Spain",
    "FR": "France",
    "GB": "United Kingdom",
    "HK": "Hong Kong",
    "IE": "Ireland",
    "IN": "India",
    "IT": "Italy",
    "JP": "Japan",
    "KR": "South Korea",
    "MX": "Mexico",
    "NL": "Netherlands",
    "PL": "Poland",
    "SG": "Singapore",
    "TR": "Turkey",
    "TW": "Taiwan",
    "UK": "United Kingdom",
    "US": "United States",
    "VN": "Vietnam",
}

# "LEIPZIG - DE", "Shenzhen-CN", "EAST MIDLANDS - GB"
_CITY_CODE = re.compile(
    r"\b([A-Za-z][A-Za-z.']+(?: [A-Za-z][A-Za-z.']+){0,3})\s?-\s?([A-Z]{2})\b"
)

# "arrived at Leipzig", "held in East Midlands, GB"
_AT_OR_IN = re.compile(
    r"\b(?i:at|in)\s+([A-Z][A-Za-z.'-]+(?:\s+[A-Z][A-Za-z.'-]+){0,2})(?:,\s*([A-Z]{2})\b)?"
)

# Words that precede or follow a place name without being part of it.
_NOT_PLACE = {
    "arrived", "at", "in", "departed", "from", "to", "the", "our", "your",
    "facility", "hub", "gateway", "sort", "centre", "center", "depot",
    "processed", "scan", "origin", "destination", "transit", "customs",
    "delivery", "progress", "ups", "dhl", "fedex", "package", "shipment",
    "clearance", "warehouse", "location", "local", "held", "on", "hold",
    "exception", "delay", "delayed", "update", "status",
}


def _trim(words: List[str]) -> List[str]:
    start = 0
    while start < len(words) and words[start].lower() in _NOT_PLACE:
        start += 1
    end = len(words)
    while end > start and words[end - 1].lower() in _NOT_PLACE:
        end -= 1
    return words[start:end]


def _format(city_words: List[str], code: Optional[str]) -> str:
    city = " ".join(word.capitalize() if word.isupper() else word for word in city_words)
    if not code:
        return city
    return f"{city}, {COUNTRY_NAMES.get(code, code)}"


def extract_location(text: str) -> Optional[str]:
    """Return the last place mentioned in ``text``, or None."""
    if not text:
        return None

    candidates: List[Tuple[int, str]] = []

    for match in _CITY_CODE.finditer(text):
        words = _trim(match.group(1).split())
        if words:
            candidates.append((match.end(), _format(words, match.group(2))))

    for match in _AT_OR_IN.finditer(text):
        words = match.group(1).split()
        if words[0].lower() in _NOT_PLACE:
            continue
        words = _trim(words)
        if words:
            candidates.append((match.end(), _format(words, match.group(2))))

    if not candidates:
        return None
    return max(candidates, key=lambda candidate: candidate[0])[1]


def _usable(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    if not value or value.lower() in ("null", "none", "unknown", UNKNOWN_LOCATION.lower()):
        return None
    return value


class LocationResolver:
    """Resolve an entity's current location for one board."""

    def __init__(self, location_field: Optional[str] = "text5__1"):
        self.location_field = location_field

    def resolve(
        self,
        fields: Mapping[str, Optional[str]],
        update_text: Optional[str] = None,
        model_location: Optional[str] = None
    ) -> str:
        if self.location_field:
            from_field = _usable(fields.get(self.location_field))
            if from_field:
                return from_field

        from_model = _usable(model_location)
        if from_model:
            return from_model

        return extract_location(update_text or "") or UNKNOWN_LOCATION
