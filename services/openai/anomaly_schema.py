"""Function tool schemas for thermal anomaly extraction and energy rating."""

from typing import Any, Dict

ANOMALY_FUNCTION_NAME = "report_thermal_anomalies"
RATING_FUNCTION_NAME = "classify_energy_rating"

_ANOMALY_ITEM: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "location": {"type": "string", "description": "Location of the anomaly in the building."},
        "severity": {"type": "string", "description": "Severity: minor, moderate, or severe."},
        "description": {"type": "string", "description": "Description of the thermal pattern."},
        "temperature_differential": {"type": "string", "description": "Temperature differential, e.g. '5-8°C'."},
        "probable_cause": {"type": "string", "description": "Likely cause of the anomaly."},
        "coordinates_text": {
            "type": "string",
            "description": "Bounding box as text 'x1,y1,x2,y2', normalised 0.0-1.0.",
        },
        "estimated_energy_loss": {"type": "string", "description": "Estimated energy loss."},
        "repair_cost": {"type": "string", "description": "Estimated repair cost in EUR."},
        "repair_priority": {"type": "string", "description": "Priority: low, medium, high, or immediate."},
        "confidence": {"type": "number", "description": "Confidence score between 0.0 and 1.0."},
    },
    "required": [
        "location",
        "severity",
        "description",
        "temperature_differential",
        "probable_cause",
        "coordinates_text",
        "estimated_energy_loss",
        "repair_cost",
        "repair_priority",
        "confidence",
    ],
    "additionalProperties": False,
}

ANOMALY_FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": ANOMALY_FUNCTION_NAME,
    "description": "Return the thermal anomalies found in an RGB + thermal image pair.",
    "parameters": {
        "type": "object",
        "properties": {
            "anomalies": {"type": "array", "items": _ANOMALY_ITEM, "description": "Detected anomalies."},
            "overall_assessment": {"type": "string", "description": "Overall assessment of the area."},
            "energy_efficiency_notes": {"type": "string", "description": "Energy efficiency notes."},
        },
        "required": ["anomalies", "overall_assessment", "energy_efficiency_notes"],
        "additionalProperties": False,
    },
    "strict": True,
}

RATING_FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": RATING_FUNCTION_NAME,
    "description": "Return the EU energy rating of the building with its justification.",
    "parameters": {
        "type": "object",
        "properties": {
            "rating": {"type": "string", "description": "EU energy rating, a single letter A through G."},
            "justification": {"type": "string", "description": "Detailed justification for the rating."},
            "improvement_potential": {"type": "string", "description": "Potential for improvement."},
        },
        "required": ["rating", "justification", "improvement_potential"],
        "additionalProperties": False,
    },
    "strict": True,
}
