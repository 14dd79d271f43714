"""Coerce free-text model output into the closed anomaly vocabularies."""

import logging
from typing import List, Optional

from models.analysis_models import EnergyRating, RepairPriority, Severity

DEFAULT_COORDINATES = [0.0, 0.0, 1.0, 1.0]
DEFAULT_RATING = EnergyRating.D


def validate_severity(severity: Optional[str]) -> Severity:
    """Map free text to a severity, defaulting to minor."""
    normalized = (severity or "").lower()
    if "severe" in normalized:
        return Severity.SEVERE
    if "moderate" in normalized:
        return Severity.MODERATE
    return Severity.MINOR


def validate_priority(priority: Optional[str]) -> RepairPriority:
    """Map free text to a repair priority, defaulting to low."""
    normalized = (priority or "").lower()
    if "immediate" in normalized:
        return RepairPriority.IMMEDIATE
    if "high" in normalized:
        return RepairPriority.HIGH
    if "medium" in normalized:
        return RepairPriority.MEDIUM
    return RepairPriority.LOW


def parse_coordinates(coordinates_text: Optional[str]) -> List[float]:
    """Parse ``"x1,y1,x2,y2"`` into four floats.

    Anything that is not exactly four finite numbers falls back to the full
    frame. Values are clamped to the normalised 0.0-1.0 range.
    """
    try:
        values = [float(part.strip()) for part in (coordinates_text or "").split(",")]
    except ValueError:
        logging.warning("Unparseable anomaly coordinates %r", coordinates_text)
        return list(DEFAULT_COORDINATES)
    if len(values) != 4 or any(v != v or v in (float("inf"), float("-inf")) for v in values):
        logging.warning("Unexpected anomaly coordinates %r", coordinates_text)
        return list(DEFAULT_COORDINATES)
    return [min(1.0, max(0.0, v)) for v in values]


def clamp_confidence(confidence) -> float:
    try:
        value = float(confidence)
    except (TypeError, ValueError):
        return 0.0
    if value != value:
        return 0.0
    return min(1.0, max(0.0, value))


def validate_rating(rating: Optional[str]) -> EnergyRating:
    """Return the first letter of the model's rating if it is A-G, else D."""
    letter = (rating or "").strip()[:1].upper()
    try:
        return EnergyRating(letter)
    except ValueError:
        return DEFAULT_RATING
