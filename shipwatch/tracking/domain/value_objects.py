"""
Tracking Value Objects
=======================

Board configuration records and tracking-token extraction.
"""

import re
from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, Field, field_validator

# Ordered: specific phrases before the generic ones they contain.
DEFAULT_AMBIGUOUS_STATUSES: Dict[str, float] = {
    "clearance processing": 18,
    "clearance event": 18,
    "customs clearance": 18,
    "processing": 24,
    "import scan": 24,
    "arrival scan": 24,
    "departure scan": 48,
    "on hold": 6,
    "exception": 12,
    "in transit": 72,
    "shipment information received": 48,
    "electronic information received": 24,
}

DEFAULT_REGION_COORDINATORS: Dict[str, str] = {
    "China": "D08MAQ61878",
    "India": "D08HQ5GQCAW",
}


class BoardConfig(BaseModel):
    """Column layout and routing for one monitored board."""
    board_id: str
    name: str
    region: Optional[str] = None
    coordinator: Optional[str] = Field(None, description="Slack user id mentioned in alerts")
    status_field: Optional[str] = Field(
        None,
        description="Only changes to this column are classified; None processes every column"
    )
    location_field: Optional[str] = "text5__1"
    due_date_field: Optional[str] = None
    customer_name_field: Optional[str] = "text1"
    company_field: Optional[str] = "text3"
    part_number_field: Optional[str] = "text0"
    tracking_field: str = "text_mkvcdqrw"

    @field_validator("board_id", mode="before")
    @classmethod
    def coerce_board_id(cls, v):
        return str(v)

    @property
    def data_fields(self) -> FrozenSet[str]:
        """Columns holding shipment details rather than carrier updates."""
        fields = (
            self.tracking_field,
            self.location_field,
            self.customer_name_field,
            self.company_field,
            self.part_number_field,
        )
        return frozenset(f for f in fields if f and f != self.status_field)

    def ignores_column(self, column_id: Optional[str]) -> bool:
        if not column_id:
            return False
        if column_id in self.data_fields:
            return True
        return bool(self.status_field) and column_id != self.status_field


DEFAULT_BOARDS: List[BoardConfig] = [
    BoardConfig(board_id="162479257", name="Main Board"),
    BoardConfig(
        board_id="9371034380",
        name="China Board",
        region="China",
        coordinator=DEFAULT_REGION_COORDINATORS["China"],
    ),
    BoardConfig(
        board_id="9371038978",
        name="India Board",
        region="India",
        coordinator=DEFAULT_REGION_COORDINATORS["India"],
        tracking_field="text_mkvcce8m",
    ),
]


class MonitorConfig(BaseModel):
    """Contents of the board configuration YAML."""
    boards: List[BoardConfig] = Field(default_factory=lambda: list(DEFAULT_BOARDS))
    region_coordinators: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_REGION_COORDINATORS)
    )
    ambiguous_statuses: Dict[str, float] = Field(
        default_factory=lambda: dict(DEFAULT_AMBIGUOUS_STATUSES)
    )

    @field_validator("ambiguous_statuses")
    @classmethod
    def validate_timeouts(cls, v: Dict[str, float]) -> Dict[str, float]:
        for phrase, hours in v.items():
            if hours <= 0:
                raise ValueError(f"timeout for '{phrase}' must be positive")
        return {phrase.lower(): hours for phrase, hours in v.items()}

    def board(self, board_id: Optional[str]) -> Optional[BoardConfig]:
        for board in self.boards:
            if board.board_id == str(board_id):
                return board
        return None

    def coordinator_for_route(self, route: Optional[str]) -> Optional[str]:
        """Region coordinator whose region name appears in the route."""
        if not route:
            return None
        for region, user_id in self.region_coordinators.items():
            if region.upper() in route.upper():
                return user_id
        return None


# Query parameters carrying a tracking number, per carrier then generic.
_TRACKING_URL_PATTERNS = (
    re.compile(r"tracking-id=([A-Z0-9]+)", re.IGNORECASE),
    re.compile(r"tracknum=([A-Z0-9]+)", re.IGNORECASE),
    re.compile(r"TrackingNumber=([A-Z0-9]+)", re.IGNORECASE),
    re.compile(r"tracknumber=([A-Z0-9]+)", re.IGNORECASE),
    re.compile(r"trknbr=([A-Z0-9]+)", re.IGNORECASE),
    re.compile(r"(?:tracking|track|trk)(?:_?(?:id|num|number))?=([A-Z0-9]+)", re.IGNORECASE),
)

_BARE_TRACKING_NUMBER = re.compile(r"^(?=.*\d)[A-Z0-9]{8,20}$", re.IGNORECASE)


def extract_tracking_number(text: Optional[str]) -> Optional[str]:
    """
    Pull a tracking number out of a carrier tracking URL.

    A value that already is a bare 8-20 character token containing a
    digit is returned upper-cased. Anything else yields None.
    """
    if not text:
        return None

    if "http" in text:
        for pattern in _TRACKING_URL_PATTERNS:
            match = pattern.search(text)
            if match:
                return match.group(1)

    stripped = text.strip()
    if _BARE_TRACKING_NUMBER.match(stripped):
        return stripped.upper()
    return None
