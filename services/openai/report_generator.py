"""Energy rating and report synthesis using the OpenAI Responses API.

Two sequential calls are made: a strict function call that classifies the EU
energy rating (A-G) with a justification, followed by a free-text call that
writes the Markdown report around that rating. Either failing raises
``ReportGenerationError``; already collected anomalies are never touched here.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from openai import AsyncOpenAI

from models.analysis_models import BuildingInfo, EnergyRating, ThermalAnomaly
from services.analysis.exceptions import ReportGenerationError
from services.openai.anomaly_schema import RATING_FUNCTION_DEFINITION, RATING_FUNCTION_NAME
from services.openai.media_inputs import build_text_inputs
from services.openai.normalization import validate_rating
from services.openai.prompts import anomalies_as_json, rating_prompt, report_system_prompt, report_user_prompt
from services.openai.response_parser import extract_text, extract_usage, parse_function_call


@dataclass
class EnergyReport:
    rating: EnergyRating
    justification: str
    improvement_potential: str
    markdown: str
    usage: Dict[str, Optional[int]] = field(default_factory=dict)


class EnergyReportGenerator:
    """Classify the building's energy rating and write the final report."""

    def __init__(self, client: AsyncOpenAI, *, model: str = "gpt-5") -> None:
        if client is None:
            raise ValueError("OpenAI AsyncOpenAI client is required.")
        self.client = client
        self.model = model

    async def generate(self, building: BuildingInfo, anomalies: List[ThermalAnomaly]) -> EnergyReport:
        """Return the rating and Markdown report for ``building``.

        Args:
            building: Inspection metadata.
            anomalies: Every anomaly detected in the session.

        Raises:
            ReportGenerationError: If either model call fails or the report is empty.
        """
        start = time.time()
        anomalies_json = anomalies_as_json(anomalies)

        try:
            rating_response = await self.client.responses.create(
                model=self.model,
                input=build_text_inputs(report_system_prompt(), rating_prompt(building, anomalies_json)),
                tools=[RATING_FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": RATING_FUNCTION_NAME},
            )
            rating_args = parse_function_call(rating_response, tool_name=RATING_FUNCTION_NAME)
        except Exception as exc:
            logging.error("Energy rating classification failed: %s", exc)
            raise ReportGenerationError(f"Error classifying energy rating: {exc}") from exc

        rating = validate_rating(rating_args.get("rating"))
        justification = rating_args.get("justification", "") or ""

        try:
            report_response = await self.client.responses.create(
                model=self.model,
                input=build_text_inputs(
                    report_system_prompt(),
                    report_user_prompt(building, rating, justification, anomalies_json),
                ),
            )
        except Exception as exc:
            logging.error("Report synthesis failed: %s", exc)
            raise ReportGenerationError(f"Error generating report: {exc}") from exc

        markdown = extract_text(report_response).strip()
        if not markdown:
            raise ReportGenerationError("Error generating report: the model returned an empty report")

        rating_usage = extract_usage(rating_response)
        report_usage = extract_usage(report_response)
        usage = {
            key: (rating_usage.get(key) or 0) + (report_usage.get(key) or 0)
            for key in ("input_tokens", "output_tokens")
        }
        logging.info("Energy report generated (rating %s) in %.3fs", rating.value, time.time() - start)
        return EnergyReport(
            rating=rating,
            justification=justification,
            improvement_potential=rating_args.get("improvement_potential", "") or "",
            markdown=markdown,
            usage=usage,
        )
