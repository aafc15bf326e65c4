import re
from dataclasses import dataclass
from typing import Optional

STREET_TYPES = {
    "ST": "STREET",
    "STREET": "STREET",
    "AVE": "AVENUE",
    "AV": "AVENUE",
    "AVENUE": "AVENUE",
    "DR": "DRIVE",
    "DRIVE": "DRIVE",
    "RD": "ROAD",
    "ROAD": "ROAD",
    "BLVD": "BOULEVARD",
    "BOULEVARD": "BOULEVARD",
    "LN": "LANE",
    "LANE": "LANE",
    "CT": "COURT",
    "COURT": "COURT",
    "PL": "PLACE",
    "PLACE": "PLACE",
    "CIR": "CIRCLE",
    "CIRCLE": "CIRCLE",
    "WY": "WAY",
    "WAY": "WAY",
    "PKWY": "PARKWAY",
    "PARKWAY": "PARKWAY",
    "TER": "TERRACE",
    "TERRACE": "TERRACE",
    "TRL": "TRAIL",
    "TRAIL": "TRAIL",
    "HWY": "HIGHWAY",
    "HIGHWAY": "HIGHWAY",
}

DIRECTIONS = {
    "N": "N", "NORTH": "N",
    "S": "S", "SOUTH": "S",
    "E": "E", "EAST": "E",
    "W": "W", "WEST": "W",
    "NE": "NE", "NORTHEAST": "NE",
    "NW": "NW", "NORTHWEST": "NW",
    "SE": "SE", "SOUTHEAST": "SE",
    "SW": "SW", "SOUTHWEST": "SW",
}

UNIT_PATTERN = re.compile(r"(?:#\s*|\b(?:APT|UNIT|STE|SUITE)\.?\s+#?)([A-Z0-9-]+)")
HOUSE_NUMBER_PATTERN = re.compile(r"^\d+(?:-\d+)?[A-Z]?$")
STATE_ZIP_PATTERN = re.compile(r"\s+[A-Z]{2}(?:\s+\d{5}(?:-\d{4})?)?$")


@dataclass(frozen=True)
class Address:
    """A property address split into the parts portal search forms ask for."""

    raw: str
    house_number: Optional[str] = None
    street_name: str = ""
    street_type: Optional[str] = None
    direction: Optional[str] = None
    unit: Optional[str] = None
    city: Optional[str] = None

    @property
    def street_line(self) -> str:
        parts = [self.house_number, self.direction, self.street_name, self.street_type]
        line = " ".join(part for part in parts if part)
        if self.unit:
            line += f" #{self.unit}"
        return line


def parse_address(raw: str) -> Address:
    """
    Normalize a free-form property address.

    Example: "6241 N Del Sol Dr Apt 4, Whites Creek, TN 37189" ->
    house_number="6241", direction="N", street_name="DEL SOL", street_type="DRIVE",
    unit="4", city="WHITES CREEK"

    Args:
        raw: Address as typed by the caller

    Returns:
        Address: Parsed, upper-cased components
    """
    text = " ".join(raw.strip().upper().replace(".", "").split())
    parts = [part.strip() for part in text.split(",")]
    street_part = parts[0] if parts else ""

    city = None
    if len(parts) >= 2:
        city = STATE_ZIP_PATTERN.sub("", parts[1]).strip() or None

    unit = None
    unit_match = UNIT_PATTERN.search(street_part)
    if unit_match:
        unit = unit_match.group(1)
        street_part = (street_part[: unit_match.start()] + street_part[unit_match.end():]).strip()

    tokens = street_part.split()

    house_number = None
    if tokens and HOUSE_NUMBER_PATTERN.match(tokens[0]):
        house_number = tokens.pop(0)

    direction = None
    # In "10 North Rd" NORTH is the street name
    if len(tokens) > 1 and tokens[0] in DIRECTIONS and not (len(tokens) == 2 and tokens[1] in STREET_TYPES):
        direction = DIRECTIONS[tokens.pop(0)]

    street_type = None
    if len(tokens) > 1 and tokens[-1] in STREET_TYPES:
        street_type = STREET_TYPES[tokens.pop()]
    elif len(tokens) > 2 and tokens[-2] in STREET_TYPES and tokens[-1] in DIRECTIONS:
        # Post-directional, e.g. "MAIN ST NW"
        post_direction = DIRECTIONS[tokens.pop()]
        street_type = STREET_TYPES[tokens.pop()]
        direction = direction or post_direction

    return Address(
        raw=raw,
        house_number=house_number,
        street_name=" ".join(tokens),
        street_type=street_type,
        direction=direction,
        unit=unit,
        city=city,
    )
