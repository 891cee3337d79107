"""
Roofing Line Item Matcher using Regular Expressions.
Classifies estimate line items into the roof components the rules audit.
"""

import re
from collections.abc import Iterable
from enum import Enum

from .models import LineItem
from .results import StarterType


class RoofComponent(str, Enum):
    """Roof components audited by the business rules."""

    RIDGE_CAP = "ridge_cap"
    DRIP_EDGE = "drip_edge"
    GUTTER_APRON = "gutter_apron"
    ICE_WATER_BARRIER = "ice_water_barrier"
    STARTER_STRIP = "starter_strip"
    UNKNOWN = "unknown"


class ItemMatcher:
    """
    Matcher for roofing estimate line items.
    Uses regex patterns over the item code and description.
    """

    # Checked in order; the first match wins
    COMPONENT_PATTERNS: list[tuple[RoofComponent, re.Pattern[str]]] = [
        (
            RoofComponent.ICE_WATER_BARRIER,
            re.compile(
                r"(ICE\s*(?:&|AND|/|N)?\s*WATER|\bI\s*&\s*W\b|\bIWS\b|RFGIWS|"
                r"ICE\s*(?:BARRIER|SHIELD|GUARD)|SELF[-\s]*ADHER|"
                r"MODIFIED\s*BITUMEN|PEEL\s*(?:&|AND|N)?\s*STICK)",
                re.IGNORECASE,
            ),
        ),
        (
            RoofComponent.GUTTER_APRON,
            re.compile(
                r"(GUTTER\s*APRON|DRIP\b.*\bGUTTER|GUTTER\b.*\bDRIP|EAVE\s*FLASHING)",
                re.IGNORECASE,
            ),
        ),
        (
            RoofComponent.DRIP_EDGE,
            re.compile(r"(DRIP\s*EDGE|RFGDRIP|RAKE\s*EDGE)", re.IGNORECASE),
        ),
        (
            RoofComponent.STARTER_STRIP,
            re.compile(r"(STARTER|RFGSTR)", re.IGNORECASE),
        ),
        (
            RoofComponent.RIDGE_CAP,
            re.compile(
                r"(RIDGE\s*CAP|HIP\s*(?:/|&|AND)?\s*RIDGE|HIP\s*CAP|RFGRIDG)",
                re.IGNORECASE,
            ),
        ),
    ]

    # Ridge vents and ice dam work look like matches but are not materials we audit
    RIDGE_VENT_PATTERN = re.compile(r"RIDGE\s*VENT", re.IGNORECASE)
    BARRIER_EXCLUDE_PATTERN = re.compile(
        r"(REMOV|REPAIR|CLEANING|INSPECT|ICE\s*DAM)", re.IGNORECASE
    )

    # Starter material indicators
    STARTER_WASTE_PATTERN = re.compile(
        r"(WASTE|CUT\s*(?:FROM|DOWN)|FIELD[-\s]*CUT|INCLUDED)", re.IGNORECASE
    )
    STARTER_UNIVERSAL_PATTERN = re.compile(
        r"(UNIVERSAL|PRE[-\s]*CUT|STARTER\s*(?:STRIP|SHINGLE|ROLL))", re.IGNORECASE
    )

    def classify(self, item: LineItem) -> RoofComponent:
        """Classify a line item into a roof component."""
        if item.is_ridge_cap_item:
            return RoofComponent.RIDGE_CAP

        text = item.search_text
        for component, pattern in self.COMPONENT_PATTERNS:
            if not pattern.search(text):
                continue
            if component == RoofComponent.RIDGE_CAP and self.RIDGE_VENT_PATTERN.search(text):
                continue
            if (
                component == RoofComponent.ICE_WATER_BARRIER
                and self.BARRIER_EXCLUDE_PATTERN.search(text)
            ):
                return RoofComponent.UNKNOWN
            return component

        return RoofComponent.UNKNOWN

    def find(self, items: Iterable[LineItem], component: RoofComponent) -> list[LineItem]:
        """Return the items classified as a component, in estimate order."""
        return [item for item in items if self.classify(item) == component]

    def classify_starter(self, item: LineItem) -> StarterType:
        """Classify starter material as universal product or cut from waste."""
        text = item.search_text
        if self.STARTER_WASTE_PATTERN.search(text):
            return StarterType.CUT_FROM_WASTE
        if self.STARTER_UNIVERSAL_PATTERN.search(text):
            return StarterType.UNIVERSAL
        return StarterType.UNKNOWN

    def is_modified_bitumen(self, item: LineItem) -> bool:
        return bool(re.search(r"MODIFIED\s*BITUMEN", item.search_text, re.IGNORECASE))


# Shared matcher instance
_matcher: ItemMatcher | None = None


def get_matcher() -> ItemMatcher:
    """Get the shared matcher instance."""
    global _matcher
    if _matcher is None:
        _matcher = ItemMatcher()
    return _matcher
