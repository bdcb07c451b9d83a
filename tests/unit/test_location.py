"""
Tests for location resolution priority and free-text extraction.
"""

from shipwatch.classification.domain import LocationResolver, extract_location
from shipwatch.config import UNKNOWN_LOCATION


def test_location_field_wins():
    resolver = LocationResolver("text5__1")

    location = resolver.resolve({"text5__1": "London, UK"}, "Arrived at LEIPZIG - DE", "Paris")

    assert location == "London, UK"


def test_model_location_when_field_blank():
    resolver = LocationResolver("text5__1")

    assert resolver.resolve({"text5__1": "   "}, "Arrived at LEIPZIG - DE", "Hong Kong") == "Hong Kong"


def test_model_placeholder_values_are_ignored():
    resolver = LocationResolver("text5__1")

    assert resolver.resolve({}, "Arrived at LEIPZIG - DE", "null") == "Leipzig, Germany"


def test_text_extraction_takes_last_mention():
    text = "Departed SHENZHEN - CN; arrived at EAST MIDLANDS - GB"

    assert extract_location(text) == "East Midlands, United Kingdom"


def test_compact_city_code_form():
    assert extract_location("Shenzhen-CN export scan") == "Shenzhen, China"


def test_at_or_in_form():
    assert extract_location("Shipment held in Cologne") == "Cologne"


def test_status_words_are_not_places():
    assert extract_location("Shipment is In Transit") is None


def test_unknown_location_sentinel():
    resolver = LocationResolver("text5__1")

    assert resolver.resolve({}, "label created") == UNKNOWN_LOCATION
