"""Prompt builders for thermographic analysis and energy reporting."""

import json
from typing import Iterable, List

from models.analysis_models import BuildingInfo, EnergyRating, ThermalAnomaly


def pair_system_prompt() -> str:
    """Return the system prompt for per-pair anomaly extraction."""
    return (
        "You are a professional thermographic engineer analyzing thermal images for energy efficiency issues. "
        "You are conservative: report genuine thermal anomalies only, never normal temperature variation."
    )


def pair_user_prompt(building_context: str, pair_label: str) -> str:
    """Return the per-pair instructions grounded in the building context."""
    return (
        f"Building Context: {building_context}\n"
        f"Area: {pair_label}\n\n"
        "1. Compare the RGB image (visual) with the thermal image (infrared).\n"
        "2. Identify thermal anomalies that indicate energy inefficiency: thermal bridges, air leakage "
        "around windows, doors and joints, insulation gaps, moisture intrusion, and temperature "
        "differentials indicating heat loss.\n"
        "3. For each anomaly provide a precise location, a severity of \"minor\", \"moderate\" or \"severe\", "
        "the temperature differential (e.g. \"5-8°C difference\"), the probable cause, coordinates as text "
        "\"x1,y1,x2,y2\" normalised to 0.0-1.0, estimated energy loss and repair cost in EUR, a priority of "
        "\"low\", \"medium\", \"high\" or \"immediate\", and a confidence between 0.0 and 1.0.\n"
        "Return an empty anomaly list when the area shows no issues."
    )


def anomalies_as_json(anomalies: Iterable[ThermalAnomaly]) -> str:
    """Serialise anomalies for inclusion in a prompt."""
    return json.dumps([a.to_dict() for a in anomalies], indent=2, ensure_ascii=False)


def rating_prompt(building: BuildingInfo, anomalies_json: str) -> str:
    return (
        "As a certified energy auditor, determine the EU energy rating for this building based on "
        "thermal analysis results.\n\n"
        "Building Information:\n"
        f"- Type: {building.building_type.value}\n"
        f"- Construction Year: {building.construction_year}\n"
        f"- Location: {building.address}\n"
        f"- Outside Temperature: {building.outside_temperature}°C\n\n"
        f"Thermal Analysis Results:\n{anomalies_json}\n\n"
        "EU Energy Rating Scale:\n"
        "- A: Excellent (minimal heat loss, modern insulation)\n"
        "- B: Very Good (minor issues, well-maintained)\n"
        "- C: Good (some inefficiencies, average performance)\n"
        "- D: Fair (moderate issues, needs improvement)\n"
        "- E: Poor (significant heat loss, multiple issues)\n"
        "- F: Very Poor (major deficiencies, urgent repairs needed)\n"
        "- G: Extremely Poor (severe energy loss, immediate action required)\n\n"
        "Consider the number and severity of anomalies, building age and construction standards, climate "
        "conditions, and overall thermal performance. Provide the rating as a single letter A through G."
    )


REPORT_SECTIONS: List[str] = [
    "Executive Summary",
    "Building Assessment",
    "Energy Rating",
    "Thermal Analysis Findings",
    "Priority Recommendations",
    "Financial Analysis",
    "Technical Appendix",
    "Conclusion and Next Steps",
]


def report_system_prompt() -> str:
    return (
        "You are an experienced building thermographer and technical writer. "
        "Write professional energy efficiency reports in clear Markdown for building owners, "
        "facility managers, and compliance officers."
    )


def report_user_prompt(building: BuildingInfo, rating: EnergyRating, justification: str, anomalies_json: str) -> str:
    """Return the report brief with the fixed section outline."""
    notes = f"- Notes: {building.notes}\n" if building.notes else ""
    return (
        "Generate a professional energy efficiency report following EU standards and building "
        "thermography best practices.\n\n"
        "Building Information:\n"
        f"- Name: {building.name}\n"
        f"- Location: {building.address}\n"
        f"- Building ID: {building.building_id}\n"
        f"- Type: {building.building_type.value}\n"
        f"- Construction Year: {building.construction_year}\n"
        f"- Inspector: {building.inspector}\n"
        f"- Inspection Date: {building.inspection_date} at {building.inspection_time}\n"
        f"- Outside Temperature: {building.outside_temperature}°C\n"
        f"{notes}\n"
        f"Energy Rating: {rating.value}\n"
        f"Rating Justification: {justification}\n\n"
        f"Thermal Analysis Results:\n{anomalies_json}\n\n"
        "Create a structured report with these sections:\n\n"
        "# Executive Summary\nBrief overview of findings and energy rating with key recommendations.\n\n"
        "# Building Assessment\nTechnical details about the building and inspection conditions.\n\n"
        f"# Energy Rating: {rating.value}\nDetailed justification for the rating with supporting evidence.\n\n"
        "# Thermal Analysis Findings\nSummary of detected anomalies organized by severity and location.\n\n"
        "# Priority Recommendations\nActionable recommendations prioritized by safety and immediate concerns, "
        "high-impact energy savings, cost-effective improvements, and long-term upgrades, with estimated "
        "costs, savings potential and payback periods.\n\n"
        "# Financial Analysis\nTotal estimated repair costs, annual savings potential, return on investment, "
        "and EU compliance considerations.\n\n"
        "# Technical Appendix\nDetailed anomaly descriptions with coordinates and technical specifications.\n\n"
        "# Conclusion and Next Steps\nSummary with clear action items and follow-up recommendations.\n\n"
        "Return only the Markdown report."
    )
