"""Per image pair thermal anomaly extraction using OpenAI's Responses API."""

import logging
import re
import time
from uuid import uuid4
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from openai import AsyncOpenAI

from models.analysis_models import ImagePair, ThermalAnomaly
from services.openai.anomaly_schema import ANOMALY_FUNCTION_DEFINITION, ANOMALY_FUNCTION_NAME
from services.openai.media_inputs import build_pair_inputs
from services.openai.normalization import (
    clamp_confidence,
    parse_coordinates,
    validate_priority,
    validate_severity,
)
from services.openai.prompts import pair_system_prompt, pair_user_prompt
from services.openai.response_parser import extract_usage, parse_function_call


def label_slug(label: str) -> str:
    return re.sub(r"\s+", "_", label.strip().lower()) or "pair"


@dataclass
class PairAnalysisResult:
    """Outcome of one image pair step; ``error`` is set when the model call failed."""

    pair: ImagePair
    anomalies: List[ThermalAnomaly] = field(default_factory=list)
    assessment: str = ""
    notes: str = ""
    error: Optional[str] = None
    usage: Dict[str, Optional[int]] = field(default_factory=dict)
    latency: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def summary(self) -> str:
        if self.error:
            return self.error
        return f"Found {len(self.anomalies)} thermal anomalies in {self.pair.label}. {self.assessment}".strip()


class ImagePairAnalyzer:
    """Detect thermal anomalies in one RGB + thermal image pair."""

    def __init__(self, client: AsyncOpenAI, *, model: str = "gpt-5") -> None:
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.system_prompt = pair_system_prompt()

    async def analyze(self, pair: ImagePair, building_context: str) -> PairAnalysisResult:
        """Return the normalised anomalies for ``pair``.

        Model, network and parsing failures are reported on the result rather
        than raised, so a single bad pair does not end the run.
        """
        start_time = time.time()
        try:
            response = await self._create_response(pair, building_context)
            payload = parse_function_call(response, tool_name=ANOMALY_FUNCTION_NAME)
            anomalies = self._normalize(pair, payload.get("anomalies") or [])
        except Exception as exc:
            message = f"Error analyzing {pair.label}: {exc}"
            logging.error(message)
            return PairAnalysisResult(pair=pair, error=message, latency=time.time() - start_time)

        result = PairAnalysisResult(
            pair=pair,
            anomalies=anomalies,
            assessment=payload.get("overall_assessment", "") or "",
            notes=payload.get("energy_efficiency_notes", "") or "",
            usage=extract_usage(response),
            latency=time.time() - start_time,
        )
        logging.info("%s (%.2fs)", result.summary, result.latency)
        return result

    async def _create_response(self, pair: ImagePair, building_context: str) -> Any:
        inputs = build_pair_inputs(
            self.system_prompt,
            pair_user_prompt(building_context, pair.label),
            rgb_url=pair.rgb_url,
            thermal_url=pair.thermal_url,
        )
        return await self.client.responses.create(
            model=self.model,
            input=inputs,
            tools=[ANOMALY_FUNCTION_DEFINITION],
            tool_choice={"type": "function", "name": ANOMALY_FUNCTION_NAME},
        )

    @staticmethod
    def _normalize(pair: ImagePair, raw_anomalies: List[Dict[str, Any]]) -> List[ThermalAnomaly]:
        """Coerce raw tool arguments into anomalies with unique ids."""
        prefix = f"{label_slug(pair.label)}_{uuid4().hex}"
        anomalies = []
        for index, raw in enumerate(raw_anomalies):
            anomalies.append(
                ThermalAnomaly(
                    id=f"{prefix}_{index}",
                    location=str(raw.get("location", "")),
                    severity=validate_severity(raw.get("severity")),
                    description=str(raw.get("description", "")),
                    temperature_differential=str(raw.get("temperature_differential", "")),
                    probable_cause=str(raw.get("probable_cause", "")),
                    coordinates=parse_coordinates(raw.get("coordinates_text")),
                    estimated_energy_loss=str(raw.get("estimated_energy_loss", "")),
                    repair_cost=str(raw.get("repair_cost", "")),
                    repair_priority=validate_priority(raw.get("repair_priority")),
                    confidence=clamp_confidence(raw.get("confidence")),
                    image_pair_id=pair.id,
                )
            )
        return anomalies
